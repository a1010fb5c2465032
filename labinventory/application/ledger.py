from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from labinventory.core import get_logger
from labinventory.domain.errors import InvalidTransition, NotFound, ValidationError
from labinventory.domain.models import BorrowingRecord, BorrowStatus
from .catalog import to_int
from .ids import generate_id

logger = get_logger(__name__)

PENDING = BorrowStatus.PENDING.value
BORROWED = BorrowStatus.BORROWED.value
RETURNED = BorrowStatus.RETURNED.value
REJECTED = BorrowStatus.REJECTED.value
OVERDUE = BorrowStatus.OVERDUE.value

# Allowed stored-state moves. returned and rejected are terminal.
TRANSITIONS = {
    PENDING: {BORROWED, REJECTED},
    BORROWED: {RETURNED},
}

class LedgerService:
    """One row per borrow transaction; guards the status state machine."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self, record_id: str):
        return self.db.query(BorrowingRecord).filter(BorrowingRecord.record_id == record_id)

    def create(
        self,
        user_id: str,
        component_id: str,
        component_name: str,
        quantity: Any,
        expected_return_date: Optional[date],
        commit: bool = True,
    ) -> BorrowingRecord:
        quantity = to_int(quantity, "quantity", minimum=1)
        if not user_id:
            raise ValidationError("userId is required")
        if not component_id:
            raise ValidationError("componentId is required")
        if expected_return_date is None:
            raise ValidationError("expectedReturnDate is required")
        now = datetime.utcnow()
        record = BorrowingRecord(
            record_id=generate_id("REC"),
            user_id=user_id,
            component_id=component_id,
            component_name=component_name,
            quantity=quantity,
            borrow_date=now,
            expected_return_date=expected_return_date,
            status=PENDING,
            remarks="",
            created_at=now,
        )
        self.db.add(record)
        if commit:
            self.db.commit()
            self.db.refresh(record)
        else:
            self.db.flush()
        return record

    def get(self, record_id: str) -> BorrowingRecord:
        record = self._query(record_id).populate_existing().first()
        if not record:
            raise NotFound(f"Borrowing record {record_id} not found")
        return record

    def list(
        self,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
        component_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> list[BorrowingRecord]:
        """Newest first. ``status="overdue"`` selects borrowed records past due."""
        query = self.db.query(BorrowingRecord)
        if status == OVERDUE:
            query = query.filter(
                BorrowingRecord.status == BORROWED,
                BorrowingRecord.expected_return_date < (today or date.today()),
            )
        elif status:
            if status not in TRANSITIONS and status not in (RETURNED, REJECTED):
                raise ValidationError(f"Unknown status '{status}'")
            query = query.filter(BorrowingRecord.status == status)
        if user_id:
            query = query.filter(BorrowingRecord.user_id == user_id)
        if component_id:
            query = query.filter(BorrowingRecord.component_id == component_id)
        return query.order_by(
            BorrowingRecord.borrow_date.desc(),
            BorrowingRecord.created_at.desc(),
            BorrowingRecord.id.desc(),
        ).all()

    def history(self, user_id: str) -> list[BorrowingRecord]:
        return self.list(user_id=user_id)

    def overdue(self, today: date, limit: Optional[int] = None) -> list[BorrowingRecord]:
        query = self.db.query(BorrowingRecord).filter(
            BorrowingRecord.status == BORROWED,
            BorrowingRecord.expected_return_date < today,
        ).order_by(BorrowingRecord.expected_return_date.asc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def is_overdue(record: BorrowingRecord, today: Optional[date] = None) -> bool:
        return record.is_overdue_on(today or date.today())

    def transition(
        self,
        record_id: str,
        new_status: str,
        extra: Optional[dict] = None,
        commit: bool = True,
    ) -> BorrowingRecord:
        """
        Move a record to ``new_status``.

        The write is conditional on the status read just before, so a
        concurrent transition of the same record makes this one fail
        instead of applying twice.
        """
        record = self.get(record_id)
        current = record.status
        if new_status not in TRANSITIONS.get(current, set()):
            if current == RETURNED and new_status == RETURNED:
                raise InvalidTransition(f"Borrowing record {record_id} is already returned")
            raise InvalidTransition(f"Cannot move borrowing record {record_id} from {current} to {new_status}")

        values = {BorrowingRecord.status: new_status}
        for key, value in (extra or {}).items():
            values[getattr(BorrowingRecord, key)] = value
        count = self._query(record_id).filter(BorrowingRecord.status == current).update(
            values, synchronize_session=False
        )
        if count == 0:
            raise InvalidTransition(f"Borrowing record {record_id} changed while moving to {new_status}")
        if commit:
            self.db.commit()
            logger.info(
                f"Borrowing record {record_id}: {current} -> {new_status}",
                extra={'extra_fields': {'record_id': record_id, 'status_before': current, 'status_after': new_status}}
            )
        return self.get(record_id)

    def update_details(
        self,
        record_id: str,
        remarks: Optional[str] = None,
        expected_return_date: Optional[date] = None,
    ) -> BorrowingRecord:
        """Admin edit of free-text and due date; status is untouched."""
        record = self.get(record_id)
        if record.status not in TRANSITIONS:
            raise InvalidTransition(f"Borrowing record {record_id} is {record.status} and can no longer be edited")
        if remarks is not None:
            record.remarks = remarks.strip()
        if expected_return_date is not None:
            record.expected_return_date = expected_return_date
        self.db.commit()
        self.db.refresh(record)
        return record
