from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from labinventory.infrastructure.db import get_db
from labinventory.auth_local import Principal
from labinventory.application.borrowing import BorrowingService
from labinventory.application.catalog import CatalogService, normalize_tags
from labinventory.application.ledger import LedgerService
from labinventory.application.schemas import (
    BorrowCreate,
    BorrowReturn,
    BorrowingRecordRead,
    ComponentSummary,
    Recommendation,
)
from labinventory.domain.errors import PermissionDenied
from .deps import get_principal

router = APIRouter(prefix="/api/student", tags=["student"])

@router.post("/borrow", response_model=BorrowingRecordRead, status_code=201)
def borrow_component(
    payload: BorrowCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Create a pending borrow request; stock is taken when an admin approves it."""
    return BorrowingService(db).request_borrow(principal, payload)

@router.post("/components/{component_id}/return", response_model=BorrowingRecordRead)
def return_component(
    component_id: str,
    payload: BorrowReturn,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return BorrowingService(db).return_component(principal, payload.record_id, component_id)

@router.get("/components", response_model=list[ComponentSummary])
def search_components(
    q: Optional[str] = Query(None, max_length=100, description="Case-insensitive name substring"),
    tag: Optional[str] = Query(None, max_length=50),
    category: Optional[str] = Query(None, max_length=100),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return CatalogService(db).list(q=q, tag=tag, category=category)

@router.get("/borrowing-history/{user_id}", response_model=list[BorrowingRecordRead])
def borrowing_history(
    user_id: str,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    if user_id != principal.user_id and not principal.is_admin:
        raise PermissionDenied("Students can only view their own borrowing history")
    return LedgerService(db).history(user_id)

@router.get("/recommendations", response_model=list[Recommendation])
def recommendations(
    tags: str = Query("", description="Comma separated tags"),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return CatalogService(db).recommend(normalize_tags(tags))
