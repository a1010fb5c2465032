from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from labinventory.infrastructure.db import get_db
from labinventory.auth_local import Principal
from labinventory.application.borrowing import BorrowingService
from labinventory.application.catalog import CatalogService
from labinventory.application.dashboard import DashboardService
from labinventory.application.ledger import LedgerService
from labinventory.application.procurement import ProcurementService
from labinventory.application.schemas import (
    BorrowingRecordRead,
    BorrowingRecordUpdate,
    BorrowReject,
    BulkReport,
    ComponentBulkCreate,
    ComponentCreate,
    ComponentRead,
    ComponentUpdate,
    DashboardStats,
    ProcurementBulkCreate,
    ProcurementCreate,
    ProcurementItem,
    ProcurementRead,
    ProcurementUpdate,
    UrgentActions,
)
from .deps import require_admin

# Every route below requires an admin principal
router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

# Components

@router.get("/components", response_model=list[ComponentRead])
def list_components(
    q: Optional[str] = Query(None, max_length=100),
    tag: Optional[str] = Query(None, max_length=50),
    category: Optional[str] = Query(None, max_length=100),
    db: Session = Depends(get_db),
):
    return CatalogService(db).list(q=q, tag=tag, category=category)

@router.post("/components", response_model=ComponentRead, status_code=201)
def create_component(payload: ComponentCreate, db: Session = Depends(get_db)):
    return CatalogService(db).create(payload)

@router.post("/components/bulk", response_model=BulkReport)
def bulk_create_components(payload: ComponentBulkCreate, db: Session = Depends(get_db)):
    """Rows are created independently; the report lists each row's outcome."""
    return CatalogService(db).bulk_create(payload.components)

@router.get("/components/{component_id}", response_model=ComponentRead)
def get_component(component_id: str, db: Session = Depends(get_db)):
    return CatalogService(db).get(component_id)

@router.put("/components/{component_id}", response_model=ComponentRead)
def update_component(component_id: str, payload: ComponentUpdate, db: Session = Depends(get_db)):
    return CatalogService(db).update(component_id, payload)

@router.delete("/components/{component_id}", status_code=204)
def delete_component(component_id: str, db: Session = Depends(get_db)):
    CatalogService(db).delete(component_id)
    return None

# Borrowing records

@router.get("/borrowing-records", response_model=list[BorrowingRecordRead])
def list_borrowing_records(
    status: Optional[str] = Query(None, description="pending, borrowed, returned, rejected or overdue"),
    user_id: Optional[str] = Query(None, alias="userId"),
    component_id: Optional[str] = Query(None, alias="componentId"),
    db: Session = Depends(get_db),
):
    return LedgerService(db).list(status=status, user_id=user_id, component_id=component_id)

@router.put("/borrowing-records/{record_id}", response_model=BorrowingRecordRead)
def update_borrowing_record(record_id: str, payload: BorrowingRecordUpdate, db: Session = Depends(get_db)):
    return LedgerService(db).update_details(
        record_id,
        remarks=payload.remarks,
        expected_return_date=payload.expected_return_date,
    )

@router.post("/borrowing-records/{record_id}/approve", response_model=BorrowingRecordRead)
def approve_borrowing_record(record_id: str, db: Session = Depends(get_db)):
    return BorrowingService(db).approve(record_id)

@router.post("/borrowing-records/{record_id}/reject", response_model=BorrowingRecordRead)
def reject_borrowing_record(record_id: str, payload: Optional[BorrowReject] = None, db: Session = Depends(get_db)):
    return BorrowingService(db).reject(record_id, payload.remarks if payload else "")

# Dashboard

@router.get("/dashboard", response_model=DashboardStats)
def dashboard(db: Session = Depends(get_db)):
    return DashboardService(db).stats()

@router.get("/dashboard/urgent-actions", response_model=UrgentActions)
def urgent_actions(db: Session = Depends(get_db)):
    return DashboardService(db).urgent_actions()

# Procurement

@router.get("/procurement", response_model=list[ProcurementItem])
def list_procurement(db: Session = Depends(get_db)):
    """Pending requests followed by low-stock suggestions."""
    return ProcurementService(db).list_suggestions()

@router.post("/procurement", response_model=ProcurementRead, status_code=201)
def create_procurement_request(
    payload: ProcurementCreate,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ProcurementService(db).create_request(payload, requested_by=principal.user_id)

@router.post("/procurement/bulk", response_model=BulkReport)
def bulk_create_procurement_requests(
    payload: ProcurementBulkCreate,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return ProcurementService(db).bulk_create(payload.requests, requested_by=principal.user_id)

@router.get("/procurement/{request_id}", response_model=ProcurementRead)
def get_procurement_request(request_id: str, db: Session = Depends(get_db)):
    return ProcurementService(db).get(request_id)

@router.put("/procurement/{request_id}", response_model=ProcurementRead)
def update_procurement_request(request_id: str, payload: ProcurementUpdate, db: Session = Depends(get_db)):
    return ProcurementService(db).update(request_id, payload)
