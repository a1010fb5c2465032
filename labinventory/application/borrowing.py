"""
Borrow / approve / reject / return.

This is the only module that changes a ledger entry and a component's
available quantity together. Each operation commits exactly once. When any
step fails, everything it did is rolled back, so the catalog and the ledger
never disagree.

Workflow is pending-first: a request reserves nothing, approval takes the
stock and a return gives it back.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from labinventory.auth_local import Principal
from labinventory.core import get_logger
from labinventory.domain.errors import (
    InsufficientStock,
    InventoryError,
    PermissionDenied,
    ValidationError,
)
from labinventory.domain.models import BorrowingRecord
from .catalog import CatalogService, to_int
from .ledger import BORROWED, REJECTED, RETURNED, LedgerService
from .schemas import BorrowCreate

logger = get_logger(__name__)

class BorrowingService:
    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogService(db)
        self.ledger = LedgerService(db)

    def request_borrow(self, principal: Principal, data: BorrowCreate) -> BorrowingRecord:
        user_id = data.user_id or principal.user_id
        if user_id != principal.user_id and not principal.is_admin:
            raise PermissionDenied("Students can only borrow for themselves")
        quantity = to_int(data.quantity, "quantity", minimum=1)

        component = self.catalog.get(data.component_id)
        if component.available_quantity < quantity:
            raise InsufficientStock(
                f"Only {component.available_quantity} of {component.name} available, {quantity} requested"
            )

        record = self.ledger.create(
            user_id=user_id,
            component_id=component.component_id,
            component_name=component.name,
            quantity=quantity,
            expected_return_date=data.expected_return_date,
        )
        logger.info(
            f"Borrow requested: {record.record_id}",
            extra={'extra_fields': {
                'record_id': record.record_id,
                'component_id': component.component_id,
                'user_id': user_id,
                'quantity': quantity,
            }}
        )
        return record

    def approve(self, record_id: str) -> BorrowingRecord:
        """Re-check stock now, take it and mark the record borrowed."""
        try:
            record = self.ledger.transition(
                record_id, BORROWED, {"borrow_date": datetime.utcnow()}, commit=False
            )
            component = self.catalog.adjust_available(record.component_id, -record.quantity, commit=False)
        except InventoryError:
            self.db.rollback()
            raise
        self.db.commit()
        logger.info(
            f"Borrow approved: {record_id}",
            extra={'extra_fields': {
                'record_id': record_id,
                'component_id': record.component_id,
                'quantity': record.quantity,
                'available_after': component.available_quantity,
            }}
        )
        return self.ledger.get(record_id)

    def reject(self, record_id: str, remarks: str = "") -> BorrowingRecord:
        # Nothing was reserved for a pending request, so stock is untouched
        return self.ledger.transition(record_id, REJECTED, {"remarks": (remarks or "").strip()})

    def return_component(self, principal: Principal, record_id: str, component_id: str = None) -> BorrowingRecord:
        record = self.ledger.get(record_id)
        if component_id and record.component_id != component_id:
            raise ValidationError(f"Borrowing record {record_id} is not for component {component_id}")
        if record.user_id != principal.user_id and not principal.is_admin:
            raise PermissionDenied("Only the borrower or an admin can return this component")

        try:
            record = self.ledger.transition(
                record_id, RETURNED, {"actual_return_date": datetime.utcnow()}, commit=False
            )
            component = self.catalog.release(record.component_id, record.quantity, commit=False)
        except InventoryError:
            self.db.rollback()
            raise
        self.db.commit()

        if component is None:
            logger.warning(
                f"Returned record {record_id} references deleted component {record.component_id}",
                extra={'extra_fields': {'record_id': record_id, 'component_id': record.component_id}}
            )
        else:
            logger.info(
                f"Component returned: {record_id}",
                extra={'extra_fields': {
                    'record_id': record_id,
                    'component_id': record.component_id,
                    'quantity': record.quantity,
                    'available_after': component.available_quantity,
                }}
            )
        return self.ledger.get(record_id)
