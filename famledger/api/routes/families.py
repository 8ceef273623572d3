import logging
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ...models.auth import Account, FamilyAccess
from ...models.member import Member
from ...schemas.family import FamilyOpen, FamilyOut, FamilySnapshot, SwitchMemberIn
from ...schemas.ledger import BalanceMismatchOut
from ...services.family_service import load_family, open_family, require_admin, switch_current_member
from ...services.ledger_service import verify_balances
from ...services.snapshot_service import export_snapshot, import_snapshot
from ...utils.report import render_family_report
from ..deps import get_acting_member, get_current_account, get_db, require_family_access

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put("/{family_id}", response_model=FamilyOut)
def open_one(
    family_id: str,
    payload: FamilyOpen | None = None,
    db: Session = Depends(get_db),
    current: Account = Depends(get_current_account),
):
    """Open a family by its sync id, creating and seeding it the first time."""
    return open_family(db, family_id=family_id, account=current, name=payload.name if payload else None)


@router.get("/{family_id}", response_model=FamilyOut)
def get_one(family_id: str = Depends(require_family_access), db: Session = Depends(get_db)):
    return load_family(db, family_id)


@router.put("/{family_id}/current-member", response_model=FamilyOut)
def switch_member(
    payload: SwitchMemberIn,
    family_id: str = Depends(require_family_access),
    db: Session = Depends(get_db),
):
    return switch_current_member(db, family_id=family_id, member_id=payload.member_id)


@router.get("/{family_id}/snapshot", response_model=FamilySnapshot)
def snapshot(family_id: str = Depends(require_family_access), db: Session = Depends(get_db)):
    return export_snapshot(db, family_id)


@router.post("/import", response_model=FamilyOut)
def import_one(
    payload: FamilySnapshot,
    db: Session = Depends(get_db),
    current: Account = Depends(get_current_account),
):
    fam = import_snapshot(db, payload)
    db.add(FamilyAccess(account_id=current.id, family_id=fam.id))
    db.commit()
    logger.info(f"Account {current.id} imported family {fam.id}")
    return load_family(db, fam.id)


@router.get("/{family_id}/report", response_class=HTMLResponse)
def report(family_id: str = Depends(require_family_access), db: Session = Depends(get_db)):
    return HTMLResponse(render_family_report(export_snapshot(db, family_id)))


@router.get("/{family_id}/audit", response_model=list[BalanceMismatchOut])
def audit(
    family_id: str = Depends(require_family_access),
    actor: Member = Depends(get_acting_member),
    db: Session = Depends(get_db),
):
    require_admin(actor, "audit balances")
    return verify_balances(db, family_id=family_id)
