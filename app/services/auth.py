"""Account credentials: bcrypt password hashes and JWT access tokens."""
from datetime import datetime, timedelta, timezone
import bcrypt
import jwt
from app.config import get_settings
from app.models.account import AccountRole

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


def _secret(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    """Hashed before the pending record is written; the plaintext never reaches storage."""
    return bcrypt.hashpw(_secret(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_secret(plain), hashed.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


def create_access_token(account_id: int, email: str, role: AccountRole) -> str:
    settings = get_settings()
    claims = {
        "sub": str(account_id),  # PyJWT requires a string subject
        "email": email,
        "role": role.value,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_access_token_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str | None) -> tuple[dict | None, str | None]:
    """Returns (claims, None) for a valid token, else (None, reason)."""
    token = (token or "").strip()
    if not token:
        return None, "empty token"
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]), None
    except jwt.ExpiredSignatureError:
        return None, "token expired"
    except jwt.PyJWTError as e:
        return None, str(e)
