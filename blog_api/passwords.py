import bcrypt
from starlette.concurrency import run_in_threadpool

from blog_api.config import settings


def _hash(password: str, rounds: int) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("utf-8")


def _check(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash, or a password past bcrypt's 72-byte input limit.
        return False


async def hash_password(password: str) -> str:
    """Return a bcrypt hash of *password*; hashing runs off the event loop."""
    return await run_in_threadpool(_hash, password, settings.BCRYPT_ROUNDS)


async def verify_password(password: str, password_hash: str) -> bool:
    return await run_in_threadpool(_check, password, password_hash)
