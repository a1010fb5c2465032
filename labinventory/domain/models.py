from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Integer, Text, Date, DateTime, JSON, CheckConstraint
from datetime import date, datetime
from enum import Enum
from typing import Optional

class Base(DeclarativeBase):
    pass

class Condition(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

class BorrowStatus(str, Enum):
    PENDING = "pending"
    BORROWED = "borrowed"
    RETURNED = "returned"
    # Derived from BORROWED + expected_return_date, never stored
    OVERDUE = "overdue"
    REJECTED = "rejected"

class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

class ProcurementStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    ORDERED = "ORDERED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"

class Component(Base):
    __tablename__ = "components"
    id: Mapped[int] = mapped_column(primary_key=True)
    component_id: Mapped[str] = mapped_column(String(40), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200), index=True)
    category: Mapped[str] = mapped_column(String(100), index=True)
    description: Mapped[str] = mapped_column(Text, default="")
    total_quantity: Mapped[int] = mapped_column(Integer, default=0)
    # Kept within [0, total_quantity] by CatalogService conditional updates
    available_quantity: Mapped[int] = mapped_column(Integer, default=0)
    threshold: Mapped[int] = mapped_column(Integer, default=5)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    datasheet_link: Mapped[str] = mapped_column(String(500), default="")
    purchase_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    condition: Mapped[str] = mapped_column(String(20), default=Condition.GOOD.value)
    remarks: Mapped[str] = mapped_column(Text, default="")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("available_quantity >= 0", name="ck_components_available_non_negative"),
        CheckConstraint("available_quantity <= total_quantity", name="ck_components_available_le_total"),
    )
    __mapper_args__ = {"version_id_col": version}

class BorrowingRecord(Base):
    __tablename__ = "borrowing_records"
    id: Mapped[int] = mapped_column(primary_key=True)
    record_id: Mapped[str] = mapped_column(String(40), unique=True, index=True)
    user_id: Mapped[str] = mapped_column(String(100), index=True)
    # Plain string reference, the catalog row may be deleted later
    component_id: Mapped[str] = mapped_column(String(40), index=True)
    # Snapshot at request time
    component_name: Mapped[str] = mapped_column(String(200))
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    borrow_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    expected_return_date: Mapped[date] = mapped_column(Date)
    actual_return_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=BorrowStatus.PENDING.value, index=True)
    remarks: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def is_overdue_on(self, today: date) -> bool:
        """True when still on loan past the expected return day (time of day ignored)."""
        return self.status == BorrowStatus.BORROWED.value and self.expected_return_date < today

    @property
    def is_overdue(self) -> bool:
        return self.is_overdue_on(date.today())

class ProcurementRequest(Base):
    __tablename__ = "procurement_requests"
    id: Mapped[int] = mapped_column(primary_key=True)
    request_id: Mapped[str] = mapped_column(String(40), unique=True, index=True)
    item_name: Mapped[str] = mapped_column(String(200))
    quantity: Mapped[int] = mapped_column(Integer)
    priority: Mapped[str] = mapped_column(String(10), default=Priority.MEDIUM.value)
    status: Mapped[str] = mapped_column(String(20), default=ProcurementStatus.PENDING.value, index=True)
    component_id: Mapped[Optional[str]] = mapped_column(String(40), nullable=True, index=True)
    category: Mapped[str] = mapped_column(String(100), default="")
    description: Mapped[str] = mapped_column(Text, default="")
    requested_by: Mapped[str] = mapped_column(String(100), default="admin")
    remarks: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
