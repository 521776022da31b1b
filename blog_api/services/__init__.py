# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   article_service:  cursor-paged reads, view counting, owned CRUD for Article
#   comment_service:  cursor-paged reads and owned CRUD for Comment
#   category_service: CRUD for the shared Category taxonomy
#   auth_service:     register / login / profile and email verification codes
#   upload_service:   image upload and removal in the object store
#   ownership:        load-and-check helpers shared by owned mutations
#
# All database-backed service functions accept an AsyncSession as their
# first argument so that the router layer controls the transaction
# boundary via the ``get_db`` dependency.
