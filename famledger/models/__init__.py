from datetime import datetime, timezone
def utcnow():
    return datetime.now(timezone.utc)
def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for DateTime(timezone=True)
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)
from .auth import Account, FamilyAccess, RefreshToken
from .family import Family
from .member import Member
from .task import Task
from .reward import Reward
from .points import Transaction
