"""
Identity tokens: issue and verify HS256-signed JWTs.

Tokens are stateless.  Nothing is stored server-side and there is no
revocation list, so a token stays valid until its ``exp`` passes even if
the account behind it changes.  Rotating ``JWT_SECRET`` invalidates every
outstanding token at once.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from blog_api.errors import ConfigurationError, InvalidTokenError

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["exp", "iat", "nbf", "subject_id"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    subject_id: int
    email: str
    username: str
    issued_at: datetime
    not_before: datetime
    expires_at: datetime


class TokenService:
    """
    Signs and verifies identity tokens with a server-held symmetric secret.

    Constructed once at application startup; an empty secret is a fatal
    configuration error rather than something discovered per request.
    """

    def __init__(
        self,
        secret: str,
        expiration_hours: int = 24,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ConfigurationError("Token service is not configured", "JWT secret is empty")
        if expiration_hours <= 0:
            raise ConfigurationError(
                "Token service is not configured", "JWT expiration must be positive"
            )
        self._secret = secret
        self._lifetime = timedelta(hours=expiration_hours)
        self._clock = clock

    def issue(self, subject_id: int, email: str, username: str) -> str:
        now = self._clock()
        payload = {
            "subject_id": subject_id,
            "email": email,
            "username": username,
            "iat": now,
            "nbf": now,
            "exp": now + self._lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """
        Return the claims of *token* or raise ``InvalidTokenError``.

        Only HS256 is accepted: a token whose header names any other
        algorithm (``none``, HS512, RS256 ...) is rejected before its
        signature is even considered.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(detail=_describe(exc)) from exc

        subject_id = payload.get("subject_id")
        if not isinstance(subject_id, int) or isinstance(subject_id, bool):
            raise InvalidTokenError(detail="Token subject is malformed")

        return TokenClaims(
            subject_id=subject_id,
            email=str(payload.get("email", "")),
            username=str(payload.get("username", "")),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            not_before=datetime.fromtimestamp(payload["nbf"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


def _describe(exc: jwt.InvalidTokenError) -> str:
    if isinstance(exc, jwt.ExpiredSignatureError):
        return "The token has expired"
    if isinstance(exc, jwt.ImmatureSignatureError):
        return "The token is not yet valid"
    if isinstance(exc, jwt.InvalidAlgorithmError):
        return "The token uses an unsupported signing algorithm"
    return "The token is invalid or has expired"
