"""
Authorization guard: turns an ``Authorization`` header into a caller identity.

The guard is the only producer of ``CallerIdentity``.  Handlers receive the
identity as an explicit argument (see ``dependencies.require_caller``); the
copy attached to ``request.state`` exists for code that only holds the
request, and ``current_subject_id`` treats its absence as a programming
error rather than a client error.
"""
import logging
from dataclasses import dataclass

from starlette.requests import Request

from blog_api.errors import (
    ContextError,
    InvalidTokenError,
    MalformedAuthHeaderError,
    UnauthenticatedError,
)
from blog_api.tokens import TokenService

logger = logging.getLogger(__name__)

BEARER_SCHEME = "Bearer"


@dataclass(frozen=True)
class CallerIdentity:
    subject_id: int
    email: str
    username: str


class AuthorizationGuard:
    def __init__(self, token_service: TokenService) -> None:
        self._tokens = token_service

    def authenticate(self, authorization: str | None) -> CallerIdentity:
        if not authorization:
            raise UnauthenticatedError()

        parts = authorization.split(" ")
        if len(parts) != 2 or parts[0] != BEARER_SCHEME or not parts[1]:
            raise MalformedAuthHeaderError()

        try:
            claims = self._tokens.verify(parts[1])
        except InvalidTokenError as exc:
            logger.info("Rejected bearer token: %s", exc.detail)
            raise

        return CallerIdentity(
            subject_id=claims.subject_id,
            email=claims.email,
            username=claims.username,
        )

    def attach(self, request: Request, authorization: str | None) -> CallerIdentity:
        """Authenticate and record the identity on *request* for downstream use."""
        caller = self.authenticate(authorization)
        request.state.caller = caller
        return caller


def current_subject_id(request: Request) -> int:
    caller = getattr(request.state, "caller", None)
    if caller is None:
        raise ContextError(detail="No caller identity on a request that skipped the guard")
    if not isinstance(caller, CallerIdentity):
        raise ContextError(detail=f"Caller identity has unexpected type {type(caller).__name__}")
    return caller.subject_id
