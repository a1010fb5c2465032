from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from typing import Any, Optional

class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

# Components

class ComponentCreate(CamelModel):
    # name/category are checked by CatalogService so bulk rows and single
    # creates share one set of rules
    name: Optional[str] = None
    category: Optional[str] = None
    description: str = ""
    total_quantity: int = 0
    threshold: Optional[int] = None
    tags: list[str] = Field(default_factory=list)
    datasheet_link: str = ""
    purchase_date: Optional[date] = None
    condition: Optional[str] = None
    remarks: str = ""

class ComponentUpdate(CamelModel):
    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    total_quantity: Optional[int] = None
    available_quantity: Optional[int] = None
    threshold: Optional[int] = None
    tags: Optional[list[str]] = None
    datasheet_link: Optional[str] = None
    purchase_date: Optional[date] = None
    condition: Optional[str] = None
    remarks: Optional[str] = None

class ComponentRead(CamelModel):
    component_id: str
    name: str
    category: str
    description: str
    total_quantity: int
    available_quantity: int
    threshold: int
    tags: list[str]
    datasheet_link: str
    purchase_date: Optional[date] = None
    condition: str
    remarks: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ComponentSummary(CamelModel):
    component_id: str
    name: str
    category: str
    tags: list[str]
    available_quantity: int

class ComponentBulkCreate(CamelModel):
    components: list[dict[str, Any]]

class BulkItemResult(CamelModel):
    index: int
    ok: bool
    id: Optional[str] = None
    error: Optional[str] = None
    detail: Optional[str] = None

class BulkReport(CamelModel):
    created: int
    failed: int
    results: list[BulkItemResult]

class Recommendation(CamelModel):
    component_id: str
    name: str
    match_score: int

# Borrowing

class BorrowCreate(CamelModel):
    user_id: Optional[str] = None
    component_id: str
    quantity: int = 1
    expected_return_date: date

class BorrowReturn(CamelModel):
    record_id: str

class BorrowReject(CamelModel):
    remarks: str = ""

class BorrowingRecordUpdate(CamelModel):
    remarks: Optional[str] = None
    expected_return_date: Optional[date] = None

class BorrowingRecordRead(CamelModel):
    record_id: str
    user_id: str
    component_id: str
    component_name: str
    quantity: int
    borrow_date: Optional[datetime] = None
    expected_return_date: date
    actual_return_date: Optional[datetime] = None
    status: str
    remarks: str
    created_at: Optional[datetime] = None
    # Computed at read time
    is_overdue: bool = False

# Procurement

class ProcurementCreate(CamelModel):
    item_name: Optional[str] = None
    quantity: Optional[int] = None
    priority: Optional[str] = None
    component_id: Optional[str] = None
    category: str = ""
    description: str = ""
    remarks: str = ""

class ProcurementUpdate(CamelModel):
    item_name: Optional[str] = None
    quantity: Optional[int] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    component_id: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    remarks: Optional[str] = None

class ProcurementBulkCreate(CamelModel):
    requests: list[dict[str, Any]]

class ProcurementRead(CamelModel):
    request_id: str
    item_name: str
    quantity: int
    priority: str
    status: str
    component_id: Optional[str] = None
    category: str
    description: str
    requested_by: str
    remarks: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ProcurementItem(CamelModel):
    """A persisted pending request or a synthetic low-stock suggestion."""
    request_id: Optional[str] = None
    component_id: Optional[str] = None
    item_name: str
    quantity: int
    priority: str
    status: str
    category: str = ""
    description: str = ""
    remarks: str = ""
    requested_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_auto_generated: bool

# Dashboard

class CategoryCount(CamelModel):
    name: str
    value: int

class DashboardStats(CamelModel):
    total_components: int
    available_components: int
    active_borrows: int
    pending_requests: int
    overdue_items: int
    low_stock_alerts: int
    efficiency_rate: int
    category_data: list[CategoryCount]

class OverdueItem(CamelModel):
    record_id: str
    component_name: str
    user_id: str
    expected_return_date: date
    days_overdue: int

class ProcurementAlert(CamelModel):
    component_id: str
    component_name: str
    available_quantity: int
    threshold: int
    category: str

class UrgentActions(CamelModel):
    overdue_items: list[OverdueItem]
    procurement_alerts: list[ProcurementAlert]
