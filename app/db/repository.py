"""Repository helpers for contract dates and alerts.

Plain functions over a sync ``Session``. They flush but never commit; the
caller owns the transaction. None of them makes a time-based policy decision
on its own: ``now`` is always passed in.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from sqlalchemy import Select, and_, delete, func, or_, select, update
from sqlalchemy.orm import Session

from app.db.models import Contract, ContractDate, DateAlert, User
from app.schemas.domain import DateType


def scheduled_time(date: datetime, offset_days: int) -> datetime:
    """When the reminder ``offset_days`` before ``date`` fires."""
    return date - timedelta(days=offset_days)


# --------------------
# Users and contracts
# --------------------
def create_user(db: Session, *, email: str, display_name: Optional[str] = None) -> User:
    user = User(id=str(uuid4()), email=email, display_name=display_name)
    db.add(user)
    db.flush()
    return user


def create_contract(
    db: Session,
    *,
    user_id: str,
    contract_type: str,
    contract_text: str = "",
) -> Contract:
    contract = Contract(
        id=str(uuid4()),
        user_id=user_id,
        contract_type=contract_type,
        contract_text=contract_text,
    )
    db.add(contract)
    db.flush()
    return contract


def get_contract(db: Session, contract_id: str) -> Optional[Contract]:
    return db.get(Contract, contract_id)


def get_date(db: Session, date_id: str) -> Optional[ContractDate]:
    return db.get(ContractDate, date_id)


def get_alert(db: Session, date_id: str, offset_days: int) -> Optional[DateAlert]:
    return db.scalars(
        select(DateAlert).where(
            DateAlert.contract_date_id == date_id,
            DateAlert.offset_days == offset_days,
        )
    ).first()


def contracts_without_dates_query() -> Select:
    """Ids of contracts with no stored dates, oldest first.

    Returned unexecuted so both the sync worker and the async API can run it.
    """
    has_dates = select(ContractDate.id).where(ContractDate.contract_id == Contract.id).exists()
    return select(Contract.id).where(~has_dates).order_by(Contract.created_at)


# --------------------
# Contract dates
# --------------------
def add_date(
    db: Session,
    *,
    contract_id: str,
    date_type: DateType,
    date: datetime,
    description: str,
    source_clause: str = "",
    is_active: bool = True,
) -> ContractDate:
    contract_date = ContractDate(
        id=str(uuid4()),
        contract_id=contract_id,
        date_type=date_type,
        date=date,
        description=description,
        source_clause=source_clause,
        is_active=is_active,
    )
    db.add(contract_date)
    db.flush()
    return contract_date


def update_date(
    db: Session,
    contract_date: ContractDate,
    *,
    date: Optional[datetime] = None,
    description: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> ContractDate:
    """Apply a user edit. A moved date reschedules every alert not yet sent."""
    if description is not None:
        contract_date.description = description
    if is_active is not None:
        contract_date.is_active = is_active
    if date is not None and date != contract_date.date:
        contract_date.date = date
        for alert in contract_date.alerts:
            if not alert.dispatched:
                alert.scheduled_at = scheduled_time(date, alert.offset_days)
    db.flush()
    return contract_date


def remove_date(db: Session, *, contract_id: str, date_id: str) -> bool:
    """Delete a date and, through the ORM cascade, all of its alerts."""
    contract_date = db.get(ContractDate, date_id)
    if contract_date is None or contract_date.contract_id != contract_id:
        return False
    db.delete(contract_date)
    db.flush()
    return True


def list_active_dates(
    db: Session,
    now: datetime,
    horizon_days: int,
    *,
    contract_id: Optional[str] = None,
) -> list[ContractDate]:
    """Active dates falling in ``[now, now + horizon_days]``, soonest first."""
    stmt = select(ContractDate).where(
        ContractDate.is_active.is_(True),
        ContractDate.date >= now,
        ContractDate.date <= now + timedelta(days=horizon_days),
    )
    if contract_id is not None:
        stmt = stmt.where(ContractDate.contract_id == contract_id)
    return list(db.scalars(stmt.order_by(ContractDate.date)))


def upcoming_dates(contract: Contract, now: datetime, days_ahead: int = 30) -> list[ContractDate]:
    limit = now + timedelta(days=days_ahead)
    return sorted(
        (d for d in contract.dates if d.is_active and now <= d.date <= limit),
        key=lambda d: d.date,
    )


def find_expired_dates(db: Session, now: datetime) -> list[ContractDate]:
    return list(db.scalars(select(ContractDate).where(ContractDate.date < now)))


# --------------------
# Alerts
# --------------------
def upsert_alert(
    db: Session,
    contract_date: ContractDate,
    offset_days: int,
    is_active: bool,
) -> DateAlert:
    """Create or update the single alert for ``(date, offset)``.

    ``scheduled_at`` is always recomputed from the current date, except on an
    alert that has already been sent, whose history is kept as is.
    """
    alert = get_alert(db, contract_date.id, offset_days)
    if alert is None:
        alert = DateAlert(
            id=str(uuid4()),
            contract_id=contract_date.contract_id,
            contract_date=contract_date,
            offset_days=offset_days,
            scheduled_at=scheduled_time(contract_date.date, offset_days),
            is_active=is_active,
            dispatched=False,
        )
        db.add(alert)
    else:
        alert.is_active = is_active
        if not alert.dispatched:
            alert.scheduled_at = scheduled_time(contract_date.date, offset_days)
    db.flush()
    return alert


def _due_clause(now: datetime, max_attempts: int, claim_ttl: timedelta):
    clauses = [
        DateAlert.is_active.is_(True),
        DateAlert.dispatched.is_(False),
        DateAlert.scheduled_at <= now,
        or_(DateAlert.claim_token.is_(None), DateAlert.claimed_at < now - claim_ttl),
    ]
    if max_attempts > 0:
        clauses.append(DateAlert.attempts < max_attempts)
    return and_(*clauses)


def _date_is_active():
    return (
        select(ContractDate.id)
        .where(ContractDate.id == DateAlert.contract_date_id, ContractDate.is_active.is_(True))
        .exists()
    )


def find_due_alerts(
    db: Session,
    now: datetime,
    *,
    max_attempts: int = 0,
    claim_ttl: timedelta = timedelta(minutes=15),
) -> list[DateAlert]:
    """Active, unsent alerts whose time has come and whose date is still active."""
    stmt = (
        select(DateAlert)
        .where(_due_clause(now, max_attempts, claim_ttl), _date_is_active())
        .order_by(DateAlert.scheduled_at)
    )
    return list(db.scalars(stmt))


def claim_alert(
    db: Session,
    alert_id: str,
    *,
    token: str,
    now: datetime,
    claim_ttl: timedelta = timedelta(minutes=15),
) -> bool:
    """Atomically take the right to send one alert.

    A single conditional UPDATE matched on a row that is still due at ``now``
    (active, unsent, unclaimed or stale, date still active); exactly one
    concurrent caller sees rowcount == 1.
    """
    result = db.execute(
        update(DateAlert)
        .where(
            DateAlert.id == alert_id,
            _due_clause(now, 0, claim_ttl),
            _date_is_active(),
        )
        .values(claim_token=token, claimed_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def confirm_dispatch(db: Session, alert_id: str, *, token: str, now: datetime) -> bool:
    result = db.execute(
        update(DateAlert)
        .where(DateAlert.id == alert_id, DateAlert.claim_token == token)
        .values(
            dispatched=True,
            dispatched_at=now,
            claim_token=None,
            claimed_at=None,
            attempts=DateAlert.attempts + 1,
            last_error=None,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def release_claim(db: Session, alert_id: str, *, token: str, error: str) -> bool:
    """Give a claimed alert back after a failed send; it stays unsent."""
    result = db.execute(
        update(DateAlert)
        .where(
            DateAlert.id == alert_id,
            DateAlert.claim_token == token,
            DateAlert.dispatched.is_(False),
        )
        .values(
            claim_token=None,
            claimed_at=None,
            attempts=DateAlert.attempts + 1,
            last_error=error[:2000],
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def delete_dangling_alerts(db: Session) -> int:
    """Remove alerts whose ContractDate no longer exists."""
    orphaned = ~select(ContractDate.id).where(ContractDate.id == DateAlert.contract_date_id).exists()
    result = db.execute(
        delete(DateAlert).where(orphaned).execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def user_upcoming_alerts(
    db: Session,
    user_id: str,
    now: datetime,
    days: int = 30,
) -> list[tuple[DateAlert, ContractDate, Contract]]:
    """Pending alerts firing within ``days`` for one user, soonest first."""
    stmt = (
        select(DateAlert, ContractDate, Contract)
        .join(ContractDate, DateAlert.contract_date_id == ContractDate.id)
        .join(Contract, ContractDate.contract_id == Contract.id)
        .where(
            Contract.user_id == user_id,
            DateAlert.is_active.is_(True),
            DateAlert.dispatched.is_(False),
            DateAlert.scheduled_at >= now,
            DateAlert.scheduled_at <= now + timedelta(days=days),
        )
        .order_by(DateAlert.scheduled_at)
    )
    return [tuple(row) for row in db.execute(stmt).all()]


def alert_stats(db: Session, now: datetime) -> dict[str, int]:
    pending = and_(DateAlert.is_active.is_(True), DateAlert.dispatched.is_(False))
    day_end = datetime(now.year, now.month, now.day, 23, 59, 59)

    def _count(*where) -> int:
        return db.scalar(select(func.count(DateAlert.id)).where(pending, *where)) or 0

    return {
        "total_active_alerts": _count(),
        "alerts_due_today": _count(DateAlert.scheduled_at >= now, DateAlert.scheduled_at <= day_end),
        "alerts_due_this_week": _count(
            DateAlert.scheduled_at >= now, DateAlert.scheduled_at <= now + timedelta(days=7)
        ),
        "total_contracts_with_dates": db.scalar(
            select(func.count(func.distinct(ContractDate.contract_id)))
        )
        or 0,
    }
