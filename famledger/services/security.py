import secrets
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
import jwt
from ..core.config import settings

ALGORITHM = "HS256"
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _bcrypt_safe(p: str) -> str:
    # bcrypt only looks at the first 72 bytes
    return p.encode("utf-8")[:72].decode("utf-8", errors="ignore")


def hash_password(p: str) -> str:
    return pwd_context.hash(_bcrypt_safe(p))


def verify_password(p: str, hashed: str) -> bool:
    return pwd_context.verify(_bcrypt_safe(p), hashed)


def create_access_token(account_id: str, minutes: int | None = None) -> str:
    exp_min = minutes if minutes is not None else settings.ACCESS_TOKEN_MIN
    expire = datetime.now(timezone.utc) + timedelta(minutes=exp_min)
    return jwt.encode({"sub": account_id, "typ": "access", "exp": expire}, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    if payload.get("typ") != "access":
        raise jwt.InvalidTokenError("not an access token")
    return payload


def new_refresh_token() -> tuple[str, datetime]:
    """Opaque refresh token and the instant it stops being accepted."""
    return secrets.token_urlsafe(48), datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_DAYS)
