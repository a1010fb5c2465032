import math
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from labinventory.domain.models import BorrowingRecord, Component
from .ledger import BORROWED, PENDING, LedgerService
from .catalog import CatalogService

URGENT_LIMIT = 5

class DashboardService:
    """Read-only aggregates for the admin console."""

    def __init__(self, db: Session):
        self.db = db

    def stats(self, today: Optional[date] = None) -> dict:
        today = today or date.today()
        components = self.db.query(Component).all()
        records = (
            self.db.query(BorrowingRecord)
            .filter(BorrowingRecord.status.in_([PENDING, BORROWED]))
            .all()
        )
        active = [r for r in records if r.status == BORROWED]

        total_quantity = sum(c.total_quantity or 0 for c in components)
        available = sum(c.available_quantity or 0 for c in components)
        # Share of owned units currently on the shelf
        efficiency = math.floor(available / total_quantity * 100 + 0.5) if total_quantity > 0 else 100

        categories = {}
        for c in components:
            name = c.category or "Other"
            categories[name] = categories.get(name, 0) + 1

        return {
            "total_components": len(components),
            "available_components": available,
            "active_borrows": len(active),
            "pending_requests": len(records) - len(active),
            "overdue_items": sum(1 for r in active if r.is_overdue_on(today)),
            "low_stock_alerts": sum(1 for c in components if c.available_quantity <= c.threshold),
            "efficiency_rate": efficiency,
            "category_data": [{"name": k, "value": v} for k, v in categories.items()],
        }

    def urgent_actions(self, today: Optional[date] = None) -> dict:
        today = today or date.today()
        overdue = LedgerService(self.db).overdue(today, limit=URGENT_LIMIT)
        low_stock = CatalogService(self.db).low_stock()[:URGENT_LIMIT]
        return {
            "overdue_items": [
                {
                    "record_id": r.record_id,
                    "component_name": r.component_name,
                    "user_id": r.user_id,
                    "expected_return_date": r.expected_return_date,
                    "days_overdue": (today - r.expected_return_date).days,
                }
                for r in overdue
            ],
            "procurement_alerts": [
                {
                    "component_id": c.component_id,
                    "component_name": c.name,
                    "available_quantity": c.available_quantity,
                    "threshold": c.threshold,
                    "category": c.category,
                }
                for c in low_stock
            ],
        }
