from fastapi import APIRouter
from . import auth, families, members, tasks, rewards, ledger

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(families.router, prefix="/families", tags=["Families"])
router.include_router(members.router, prefix="/families", tags=["Members"])
router.include_router(tasks.router, prefix="/families", tags=["Tasks"])
router.include_router(rewards.router, prefix="/families", tags=["Rewards"])
router.include_router(ledger.router, prefix="/families", tags=["Ledger"])
