"""
Tests for the member ledger store.

Covers:
1. Atomic apply (balance + history move together)
2. Reads: balance, history ordering and limits, family feed
3. Optimistic concurrency: retry after a lost race, Conflict when retries run out
4. Store failures surfacing as TransientIO
"""
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from famledger.core.errors import Conflict, InsufficientBalance, NotFound, TransientIO
from famledger.db.base import Base
from famledger.db.session import enable_sqlite_foreign_keys
from famledger.models import as_utc, utcnow
from famledger.models.member import Member
from famledger.models.points import Transaction, TransactionType
from famledger.schemas.ledger import TransactionDraft
from famledger.services import ledger_service


def _draft(points, title="test", kind=TransactionType.ADJUSTMENT):
    return TransactionDraft(title=title, points=points, kind=kind)


class TestApplyTransaction:
    def test_balance_and_history_move_together(self, db, admin):
        result = ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(7))

        assert result.member.balance == 7
        assert len(result.transactions) == 1
        assert result.transactions[0].points == 7
        assert ledger_service.get_balance(db, member_id=admin.id) == 7
        assert [t.points for t in ledger_service.get_history(db, member_id=admin.id)] == [7]

    def test_unknown_member(self, db, family):
        with pytest.raises(NotFound):
            ledger_service.apply_transaction(db, member_id="nope", draft=_draft(1))

    def test_require_funds_refuses_overdraw(self, db, admin):
        ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(3))

        with pytest.raises(InsufficientBalance) as exc:
            ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(-4), require_funds=True)

        assert exc.value.balance == 3
        assert ledger_service.get_balance(db, member_id=admin.id) == 3
        assert len(ledger_service.get_history(db, member_id=admin.id)) == 1

    def test_history_is_newest_first_and_limited(self, db, admin):
        for n in range(1, 6):
            ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(n, title=f"t{n}"))

        history = ledger_service.get_history(db, member_id=admin.id, limit=3)

        assert [t.title for t in history] == ["t5", "t4", "t3"]

    def test_zero_limit_returns_nothing(self, db, admin):
        ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(2))

        assert ledger_service.get_history(db, member_id=admin.id, limit=0) == []

    def test_history_filtered_by_kind(self, db, admin):
        ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(2, title="a", kind=TransactionType.EARN))
        ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(-1, title="b", kind=TransactionType.PENALTY))
        ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(4, title="c", kind=TransactionType.EARN))

        earned = ledger_service.get_history(db, member_id=admin.id, kind=TransactionType.EARN)

        assert [t.title for t in earned] == ["c", "a"]
        assert ledger_service.get_history(db, member_id=admin.id, kind=TransactionType.REDEEM) == []

    def test_timestamps_strictly_increase_even_for_same_instant(self, db, admin):
        draft = _draft(1)
        for _ in range(3):
            ledger_service.apply_transaction(db, member_id=admin.id, draft=draft)

        stamps = [as_utc(t.timestamp) for t in reversed(ledger_service.get_history(db, member_id=admin.id))]
        assert stamps[0] < stamps[1] < stamps[2]

    def test_family_feed_since(self, db, admin, kid):
        first = ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(1, title="old"))
        cutoff = as_utc(first.transactions[0].timestamp)
        ledger_service.apply_transaction(
            db, member_id=kid.id,
            draft=TransactionDraft(title="new", points=2, kind=TransactionType.EARN,
                                   timestamp=cutoff + timedelta(seconds=1)),
        )

        feed = ledger_service.list_family_transactions(db, family_id=admin.family_id, since=cutoff)

        assert [t.title for t in feed] == ["new"]

    def test_verify_balances_reports_tampering(self, db, admin):
        ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(4))
        assert ledger_service.verify_balances(db, family_id=admin.family_id) == []

        db.execute(update(Member).where(Member.id == admin.id).values(balance=99))
        db.commit()

        assert ledger_service.verify_balances(db, family_id=admin.family_id) == [
            {"member_id": admin.id, "balance": 99, "history_total": 4}
        ]


class TestMemberSummary:
    def test_totals_week_and_today(self, db, admin):
        old = TransactionDraft(
            title="long ago", points=4, kind=TransactionType.EARN, timestamp=utcnow() - timedelta(days=10)
        )
        ledger_service.apply_transaction(db, member_id=admin.id, draft=old)
        for points, kind in [(3, TransactionType.EARN), (-2, TransactionType.PENALTY), (5, TransactionType.ADJUSTMENT)]:
            ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(points, kind=kind))

        summary = ledger_service.member_summary(db, member_id=admin.id)

        assert summary["day"] == ledger_service.today()
        assert summary["balance"] == 10
        assert summary["totals"] == {
            TransactionType.EARN: 7,
            TransactionType.PENALTY: -2,
            TransactionType.REDEEM: 0,
            TransactionType.TRANSFER: 0,
            TransactionType.ADJUSTMENT: 5,
        }
        assert summary["last_7_days_count"] == 3
        assert summary["gained_on_day"] == 8

    def test_quiet_day(self, db, admin):
        ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(3))

        summary = ledger_service.member_summary(db, member_id=admin.id, day=date(2000, 1, 1))

        assert summary["last_7_days_count"] == 0
        assert summary["gained_on_day"] == 0
        assert summary["totals"][TransactionType.ADJUSTMENT] == 3

    def test_unknown_member(self, db, family):
        with pytest.raises(NotFound):
            ledger_service.member_summary(db, member_id="nope")

class TestConcurrency:
    """Lost races are retried; persistent ones surface as Conflict."""

    def test_retries_after_another_device_wins(self, tmp_path, make_family, monkeypatch):
        engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False})
        enable_sqlite_foreign_keys(engine)
        Base.metadata.create_all(bind=engine)
        factory = sessionmaker(bind=engine, autoflush=False, future=True)
        db = factory()
        member = make_family(db).members[0]
        member_id, family_id = member.id, member.family_id

        original = ledger_service._read_balance
        reads = []

        def racing_read(session, mid):
            read = original(session, mid)
            reads.append(read)
            if len(reads) == 1:
                # another device commits between our read and our write
                other = factory()
                other.execute(
                    update(Member).where(Member.id == mid)
                    .values(balance=Member.balance + 5, version=Member.version + 1)
                )
                other.add(Transaction(family_id=family_id, member_id=mid, title="other device",
                                      points=5, type=TransactionType.EARN))
                other.commit()
                other.close()
            return read

        monkeypatch.setattr(ledger_service, "_read_balance", racing_read)

        result = ledger_service.apply_transaction(db, member_id=member_id, draft=_draft(2))

        assert len(reads) == 2
        assert result.member.balance == 7
        assert ledger_service.verify_balances(db, family_id=family_id) == []
        db.close()
        engine.dispose()

    def test_conflict_after_bounded_retries(self, db, admin, monkeypatch):
        reads = []

        def stale_read(session, mid):
            reads.append(mid)
            return ledger_service.BalanceRead(balance=0, version=-1)

        monkeypatch.setattr(ledger_service, "_read_balance", stale_read)

        with pytest.raises(Conflict):
            ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(3))

        assert len(reads) == 3
        assert ledger_service.get_balance(db, member_id=admin.id) == 0
        assert ledger_service.get_history(db, member_id=admin.id) == []

    def test_store_outage_is_transient_io(self, db, admin, monkeypatch):
        def broken_read(session, mid):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(ledger_service, "_read_balance", broken_read)

        with pytest.raises(TransientIO):
            ledger_service.apply_transaction(db, member_id=admin.id, draft=_draft(3))


class TestGrantKey:
    def test_same_key_writes_once(self, db, admin):
        draft = TransactionDraft(title="bonus", points=1, kind=TransactionType.EARN)

        first = ledger_service.apply_grant(db, member_id=admin.id, draft=draft, grant_key="k1")
        second = ledger_service.apply_grant(db, member_id=admin.id, draft=draft, grant_key="k1")

        assert first is not None
        assert second is None
        assert ledger_service.get_balance(db, member_id=admin.id) == 1

    def test_two_sessions_racing_on_one_key(self, session_factory, admin):
        draft = TransactionDraft(title="bonus", points=1, kind=TransactionType.EARN)
        one, two = session_factory(), session_factory()

        results = [
            ledger_service.apply_grant(one, member_id=admin.id, draft=draft, grant_key="same"),
            ledger_service.apply_grant(two, member_id=admin.id, draft=draft, grant_key="same"),
        ]

        assert sum(r is not None for r in results) == 1
        assert ledger_service.get_balance(two, member_id=admin.id) == 1
        one.close()
        two.close()
