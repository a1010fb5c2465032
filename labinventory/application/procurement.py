from typing import Iterable, Union

from pydantic.alias_generators import to_snake
from sqlalchemy.orm import Session

from labinventory.core import get_logger
from labinventory.core_settings import get_settings
from labinventory.domain.errors import InventoryError, NotFound, ValidationError
from labinventory.domain.models import Priority, ProcurementRequest, ProcurementStatus
from .catalog import CatalogService, to_int
from .ids import generate_id
from .schemas import ProcurementCreate, ProcurementUpdate

logger = get_logger(__name__)

PRIORITIES = [p.value for p in Priority]
STATUSES = [s.value for s in ProcurementStatus]

def normalize_priority(value) -> str:
    """Upper-cased priority, MEDIUM for anything missing or unknown."""
    if isinstance(value, str) and value.strip().upper() in PRIORITIES:
        return value.strip().upper()
    return Priority.MEDIUM.value

class ProcurementService:
    """Manual reorder requests plus low-stock suggestions derived on read."""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def create_request(self, data: Union[ProcurementCreate, dict], requested_by: str = "admin") -> ProcurementRequest:
        if isinstance(data, ProcurementCreate):
            data = data.model_dump()
        item_name = str(data.get("item_name") or "").strip()
        if not item_name:
            raise ValidationError("itemName is required")
        if data.get("quantity") in (None, ""):
            raise ValidationError("quantity is required")
        quantity = to_int(data["quantity"], "quantity", minimum=1)

        obj = ProcurementRequest(
            request_id=generate_id("REQ"),
            item_name=item_name,
            quantity=quantity,
            priority=normalize_priority(data.get("priority")),
            status=ProcurementStatus.PENDING.value,
            component_id=data.get("component_id") or None,
            category=str(data.get("category") or "").strip(),
            description=str(data.get("description") or "").strip(),
            requested_by=requested_by or "admin",
            remarks=str(data.get("remarks") or "").strip(),
        )
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        logger.info(
            f"Procurement request created: {obj.request_id}",
            extra={'extra_fields': {
                'request_id': obj.request_id,
                'component_id': obj.component_id,
                'quantity': obj.quantity,
                'priority': obj.priority,
            }}
        )
        return obj

    def bulk_create(self, rows: Iterable[dict], requested_by: str = "admin") -> dict:
        results = []
        for index, row in enumerate(rows):
            try:
                if not isinstance(row, dict):
                    raise ValidationError("row must be an object")
                obj = self.create_request({to_snake(k): v for k, v in row.items()}, requested_by)
                results.append({"index": index, "ok": True, "id": obj.request_id})
            except InventoryError as e:
                self.db.rollback()
                results.append({"index": index, "ok": False, "error": e.error, "detail": e.detail})
        created = sum(1 for r in results if r["ok"])
        return {"created": created, "failed": len(results) - created, "results": results}

    def get(self, request_id: str) -> ProcurementRequest:
        obj = self.db.query(ProcurementRequest).filter(ProcurementRequest.request_id == request_id).first()
        if not obj:
            raise NotFound(f"Procurement request {request_id} not found")
        return obj

    def update(self, request_id: str, data: Union[ProcurementUpdate, dict]) -> ProcurementRequest:
        if isinstance(data, ProcurementUpdate):
            data = data.model_dump(exclude_unset=True)
        obj = self.get(request_id)

        # Validate everything before touching the row
        changes = {}
        if "item_name" in data:
            item_name = str(data["item_name"] or "").strip()
            if not item_name:
                raise ValidationError("itemName cannot be empty")
            changes["item_name"] = item_name
        if data.get("quantity") is not None:
            changes["quantity"] = to_int(data["quantity"], "quantity", minimum=1)
        if data.get("priority") is not None:
            priority = str(data["priority"]).strip().upper()
            if priority not in PRIORITIES:
                raise ValidationError(f"priority must be one of {', '.join(PRIORITIES)}")
            changes["priority"] = priority
        if data.get("status") is not None:
            status = str(data["status"]).strip().upper()
            if status not in STATUSES:
                raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
            changes["status"] = status
        if "component_id" in data:
            changes["component_id"] = data["component_id"] or None
        for field in ("category", "description", "remarks"):
            if data.get(field) is not None:
                changes[field] = str(data[field]).strip()

        for key, value in changes.items():
            setattr(obj, key, value)
        self.db.commit()
        self.db.refresh(obj)
        logger.info(
            f"Procurement request updated: {request_id}",
            extra={'extra_fields': {'request_id': request_id, 'fields': sorted(changes)}}
        )
        return obj

    def list_suggestions(self) -> list[dict]:
        """
        Pending manual requests (newest first) followed by synthetic
        suggestions for every low-stock component not already covered by
        one of those requests. Synthetic entries are never stored.
        """
        manual = (
            self.db.query(ProcurementRequest)
            .filter(ProcurementRequest.status == ProcurementStatus.PENDING.value)
            .order_by(ProcurementRequest.created_at.desc(), ProcurementRequest.id.desc())
            .all()
        )
        covered = {r.component_id for r in manual if r.component_id}

        items = [
            {
                "request_id": r.request_id,
                "component_id": r.component_id,
                "item_name": r.item_name,
                "quantity": r.quantity,
                "priority": r.priority,
                "status": r.status,
                "category": r.category,
                "description": r.description or "",
                "remarks": r.remarks or "",
                "requested_by": r.requested_by or "admin",
                "created_at": r.created_at,
                "updated_at": r.updated_at,
                "is_auto_generated": False,
            }
            for r in manual
        ]

        for component in CatalogService(self.db).low_stock():
            if component.component_id in covered:
                continue
            items.append(self.suggest_for(component))
        return items

    def suggest_for(self, component) -> dict:
        quantity = max(component.threshold - component.available_quantity + self.settings.PROCUREMENT_BUFFER, 1)
        if component.available_quantity <= self.settings.HIGH_PRIORITY_LEVEL:
            priority = Priority.HIGH.value
        else:
            priority = Priority.MEDIUM.value
        return {
            "request_id": None,
            "component_id": component.component_id,
            "item_name": component.name,
            "quantity": quantity,
            "priority": priority,
            "status": ProcurementStatus.PENDING.value,
            "category": component.category,
            "is_auto_generated": True,
        }
