from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.orm import Session
import logging
from ...schemas.auth import SignupIn, TokenOut, AccountOut
from ...services.account_service import create_account, authenticate, get_by_email
from ...services.security import create_access_token, new_refresh_token
from ...models import as_utc
from ...models.auth import Account, RefreshToken
from ..deps import get_db, get_current_account

logger = logging.getLogger(__name__)

router = APIRouter()


def _issue_tokens(db: Session, account_id: str) -> TokenOut:
    plain, expires_at = new_refresh_token()
    db.add(RefreshToken(account_id=account_id, token=plain, expires_at=expires_at))
    db.commit()
    return TokenOut(access_token=create_access_token(account_id), refresh_token=plain)


@router.post("/signup", response_model=AccountOut)
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    if get_by_email(db, payload.email):
        logger.warning(f"Signup failed: Email already registered - {payload.email}")
        raise HTTPException(400, "Email already registered")
    return create_account(db, email=payload.email, password=payload.password, display_name=payload.display_name)


@router.post("/token", response_model=TokenOut)
def token(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    account = authenticate(db, email=form.username, password=form.password)
    if not account:
        logger.warning(f"Sign-in failed for {form.username}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect credentials")
    return _issue_tokens(db, account.id)


@router.post("/refresh", response_model=TokenOut)
def refresh(refresh_token: str, db: Session = Depends(get_db)):
    """Trade a refresh token for a new pair; the old refresh token is revoked."""
    rt = db.execute(
        select(RefreshToken).where(RefreshToken.token == refresh_token, RefreshToken.is_revoked.is_(False))
    ).scalar_one_or_none()
    if not rt or (rt.expires_at and as_utc(rt.expires_at) < datetime.now(timezone.utc)):
        raise HTTPException(401, "Invalid or expired refresh")
    rt.is_revoked = True
    return _issue_tokens(db, rt.account_id)


@router.get("/me", response_model=AccountOut)
def me(current: Account = Depends(get_current_account)):
    return current
