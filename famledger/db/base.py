# Import every model so Base.metadata knows all tables before create_all().
from ..models.auth import Account, FamilyAccess, RefreshToken
from ..models.family import Family
from ..models.member import Member, MemberRole
from ..models.task import Task, TaskCategory
from ..models.reward import Reward, RewardStatus, RewardType
from ..models.points import Transaction, TransactionType
from .base_class import Base
