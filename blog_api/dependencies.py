from typing import Annotated

from fastapi import Header, Path, Query, Request

from blog_api.errors import ConfigurationError
from blog_api.guard import AuthorizationGuard, CallerIdentity
from blog_api.schemas import MAX_ID
from blog_api.tokens import TokenService

# Primary key in a URL path; ids outside the column range are rejected with 422.
PathId = Annotated[int, Path(ge=1, le=MAX_ID)]


class CursorParams:
    """
    Reusable FastAPI dependency that parses keyset pagination parameters.

    Usage in a router::

        @router.get("/articles")
        async def list_articles(cursor: CursorParams = Depends()):
            ...

    Attributes
    ----------
    last_id:
        Id of the last item of the previous page, or None for the first
        page.  Must be a positive integer within the id column range when
        supplied.
    limit:
        Requested page size.  Deliberately unconstrained here: the
        pagination engine clamps out-of-range values to the endpoint
        default instead of rejecting the request.
    """

    def __init__(
        self,
        last_id: int | None = Query(
            None,
            ge=1,
            le=MAX_ID,
            description="Id of the last item already seen; omit for the first page.",
        ),
        limit: int | None = Query(
            None,
            description="Page size; out-of-range values fall back to the endpoint default.",
        ),
    ) -> None:
        self.last_id = last_id
        self.limit = limit


def get_token_service(request: Request) -> TokenService:
    service = getattr(request.app.state, "token_service", None)
    if service is None:
        raise ConfigurationError("Token service is not initialized")
    return service


def get_guard(request: Request) -> AuthorizationGuard:
    guard = getattr(request.app.state, "auth_guard", None)
    if guard is None:
        raise ConfigurationError("Authorization guard is not initialized")
    return guard


async def require_caller(
    request: Request,
    authorization: str | None = Header(None),
) -> CallerIdentity:
    """Reject the request unless it carries a valid bearer token."""
    return get_guard(request).attach(request, authorization)
