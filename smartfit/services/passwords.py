"""Password hashing for user writes.

Hashes are bcrypt, the format the database gateway stores and checks on
verification.
"""

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Check ``plain`` against a stored hash.

    Not used by the service itself, which leaves verification to the
    gateway; kept for tools that check hashes this service wrote.
    """
    return pwd_context.verify(plain, hashed)
