from typing import Generator, Optional
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
import jwt
from ..db.session import SessionLocal
from ..models.auth import Account
from ..models.member import Member
from ..services.family_service import get_actor, get_family, has_access
from ..services.security import decode_access_token
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
def get_current_account(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> Account:
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    account_id: Optional[str] = payload.get("sub")
    if not account_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    account = db.get(Account, account_id)
    if not account or not account.is_active:
        raise HTTPException(status_code=401, detail="Inactive or missing account")
    return account
def require_family_access(
    family_id: str,
    db: Session = Depends(get_db),
    current: Account = Depends(get_current_account),
) -> str:
    get_family(db, family_id)
    if not has_access(db, account_id=current.id, family_id=family_id):
        raise HTTPException(403, "This account has not opened this family")
    return family_id
def get_acting_member(
    family_id: str = Depends(require_family_access),
    x_member_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Member:
    # the profile the device is currently viewing as, unless the header names another
    return get_actor(db, family_id=family_id, actor_id=x_member_id)
