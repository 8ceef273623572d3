from sqlalchemy.orm import Session
from sqlalchemy import select
import logging
from ..models.auth import Account
from .security import hash_password, verify_password

logger = logging.getLogger(__name__)

def create_account(db: Session, *, email: str, password: str, display_name: str | None) -> Account:
    try:
        account = Account(email=email, display_name=display_name, hashed_password=hash_password(password))
        db.add(account)
        db.commit()
        db.refresh(account)
        logger.info(f"Account created: id={account.id}, email={account.email}")
        return account
    except Exception as e:
        logger.error(f"Error creating account with email {email}: {str(e)}", exc_info=True)
        db.rollback()
        raise

def get_by_email(db: Session, email: str) -> Account | None:
    return db.execute(select(Account).where(Account.email == email)).scalar_one_or_none()

def authenticate(db: Session, email: str, password: str) -> Account | None:
    account = get_by_email(db, email)
    if not account:
        return None
    if not verify_password(password, account.hashed_password):
        return None
    return account
