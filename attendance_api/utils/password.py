# attendance_api/utils/password.py
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """False for accounts without a stored hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)
