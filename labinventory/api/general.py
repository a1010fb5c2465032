from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from labinventory.infrastructure.db import get_db
from labinventory.application.catalog import CatalogService
from labinventory.application.schemas import ComponentSummary

router = APIRouter(prefix="/api/components", tags=["components"])

@router.get("/", response_model=list[ComponentSummary])
def list_components(db: Session = Depends(get_db)):
    """Public catalog view."""
    return CatalogService(db).list()

@router.get("/tags", response_model=list[str])
def list_tags(db: Session = Depends(get_db)):
    return CatalogService(db).tags()

@router.get("/categories", response_model=list[str])
def list_categories(db: Session = Depends(get_db)):
    return CatalogService(db).categories()
