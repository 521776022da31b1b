"""
Auth service: accounts, credentials and email verification codes.

Passwords are bcrypt-hashed off the event loop.  Successful register and
login both answer with a freshly issued identity token plus the public
user record.  Verification codes are six random digits kept in Redis for
``VERIFICATION_CODE_TTL`` seconds and consumed on first successful use.
"""
import logging
import secrets
import smtplib

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.code_store import code_store
from blog_api.config import settings
from blog_api.errors import (
    ConflictError,
    InternalError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from blog_api.guard import CallerIdentity
from blog_api.mailer import mailer
from blog_api.models import User
from blog_api.passwords import hash_password, verify_password
from blog_api.schemas import LoginRequest, RegisterRequest
from blog_api.tokens import TokenService

logger = logging.getLogger(__name__)


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


def _auth_payload(user: User, tokens: TokenService) -> dict:
    return {
        "token": tokens.issue(user.id, user.email, user.username),
        "user": _user_to_dict(user),
    }


async def _email_taken(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(User.id).where(User.email == email))
    return result.first() is not None


async def _load_user(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** 6):06d}"


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

async def register(db: AsyncSession, data: RegisterRequest, tokens: TokenService) -> dict:
    """
    Create an account and sign the new user in.

    Email is checked before username, so a request that collides on both
    is reported as an email conflict.
    """
    if await _email_taken(db, data.email):
        raise ConflictError("Email already exists", "An account with this email already exists")

    result = await db.execute(select(User.id).where(User.username == data.username))
    if result.first() is not None:
        raise ConflictError("Username already exists", "This username is already taken")

    user = User(
        email=data.email,
        username=data.username,
        password_hash=await hash_password(data.password),
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ConflictError("User already exists", "Email or username is already taken") from exc

    user = await _load_user(db, user.id)
    logger.info("Registered user %s (%s)", user.id, user.username)
    return _auth_payload(user, tokens)


async def login(db: AsyncSession, data: LoginRequest, tokens: TokenService) -> dict:
    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()
    if user is None or not await verify_password(data.password, user.password_hash):
        logger.info("Failed login for %s", data.email)
        raise InvalidCredentialsError()
    return _auth_payload(user, tokens)


async def get_profile(db: AsyncSession, caller: CallerIdentity) -> dict:
    user = await _load_user(db, caller.subject_id)
    if user is None:
        raise NotFoundError("User")
    return _user_to_dict(user)


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

async def send_verification_code(db: AsyncSession, email: str) -> None:
    """Issue a new code for *email* (replacing any earlier one) and mail it."""
    if await _email_taken(db, email):
        raise ConflictError("Email already exists", "An account with this email already exists")

    code = generate_code()
    try:
        await code_store.save(email, code, settings.VERIFICATION_CODE_TTL)
    except RedisError as exc:
        logger.error("Could not store verification code for %s: %s", email, exc)
        raise InternalError(detail="Verification code could not be stored") from exc

    try:
        await mailer.send_verification_code(email, code)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Could not send verification code to %s: %s", email, exc)
        raise InternalError(detail="Verification email could not be sent") from exc


async def verify_code(email: str, code: str) -> None:
    try:
        stored = await code_store.get(email)
    except RedisError as exc:
        logger.error("Could not read verification code for %s: %s", email, exc)
        raise InternalError(detail="Verification code could not be read") from exc

    if stored is None or not secrets.compare_digest(stored, code):
        raise ValidationError("Invalid verification code", "The code is wrong or has expired")

    try:
        await code_store.delete(email)
    except RedisError as exc:
        logger.error("Could not delete verification code for %s: %s", email, exc)
        raise InternalError(detail="Verification code could not be consumed") from exc
