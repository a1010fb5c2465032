from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Iterable, Optional, Union

from sqlalchemy import case, func
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from pydantic.alias_generators import to_snake

from labinventory.core import get_logger
from labinventory.core_settings import get_settings
from labinventory.domain.errors import (
    ConcurrencyConflict,
    InsufficientStock,
    InventoryError,
    NotFound,
    ValidationError,
)
from labinventory.domain.models import Component, Condition
from .ids import generate_id
from .schemas import ComponentCreate, ComponentUpdate

logger = get_logger(__name__)

CONDITIONS = [c.value for c in Condition]

def to_int(value: Any, field: str, minimum: Optional[int] = None) -> int:
    """Coerce loosely typed input (bulk rows carry strings) into an int."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        value = value.strip()
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float) and value != number:
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return number

def to_date(value: Any, field: str) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")

def normalize_tags(value: Any) -> list[str]:
    if value in (None, ""):
        return []
    if isinstance(value, str):
        value = value.split(",")
    tags = []
    for tag in value:
        tag = str(tag).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags

def _required_text(value: Any, field: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{field} is required")
    return text

class CatalogService:
    """Canonical component records and the only writer of their quantities."""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def _query(self, component_id: str):
        return self.db.query(Component).filter(Component.component_id == component_id)

    def _clean_new(self, data: dict) -> dict:
        total = to_int(data.get("total_quantity") or 0, "totalQuantity", minimum=0)
        threshold = data.get("threshold")
        condition = str(data.get("condition") or Condition.GOOD.value).strip().lower()
        if condition not in CONDITIONS:
            raise ValidationError(f"condition must be one of {', '.join(CONDITIONS)}")
        return {
            "name": _required_text(data.get("name"), "name"),
            "category": _required_text(data.get("category"), "category"),
            "description": str(data.get("description") or "").strip(),
            "total_quantity": total,
            "available_quantity": total,
            "threshold": self.settings.DEFAULT_THRESHOLD if threshold in (None, "") else to_int(threshold, "threshold", minimum=0),
            "tags": normalize_tags(data.get("tags")),
            "datasheet_link": str(data.get("datasheet_link") or "").strip(),
            "purchase_date": to_date(data.get("purchase_date"), "purchaseDate"),
            "condition": condition,
            "remarks": str(data.get("remarks") or "").strip(),
        }

    def create(self, data: Union[ComponentCreate, dict]) -> Component:
        if isinstance(data, ComponentCreate):
            data = data.model_dump()
        obj = Component(component_id=generate_id("COMP"), **self._clean_new(data))
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        logger.info(
            f"Component created: {obj.component_id}",
            extra={'extra_fields': {'component_id': obj.component_id, 'total_quantity': obj.total_quantity}}
        )
        return obj

    def bulk_create(self, rows: Iterable[dict]) -> dict:
        """Create each row on its own; a bad row never undoes earlier ones."""
        results = []
        for index, row in enumerate(rows):
            try:
                if not isinstance(row, dict):
                    raise ValidationError("row must be an object")
                # Rows arrive with the wire (camelCase) keys
                obj = self.create({to_snake(k): v for k, v in row.items()})
                results.append({"index": index, "ok": True, "id": obj.component_id})
            except InventoryError as e:
                self.db.rollback()
                results.append({"index": index, "ok": False, "error": e.error, "detail": e.detail})
        created = sum(1 for r in results if r["ok"])
        logger.info(
            "Bulk component create finished",
            extra={'extra_fields': {'created': created, 'failed': len(results) - created}}
        )
        return {"created": created, "failed": len(results) - created, "results": results}

    def get(self, component_id: str) -> Component:
        obj = self._query(component_id).populate_existing().first()
        if not obj:
            raise NotFound(f"Component {component_id} not found")
        return obj

    def list(self, q: Optional[str] = None, tag: Optional[str] = None, category: Optional[str] = None) -> list[Component]:
        query = self.db.query(Component)
        if q:
            query = query.filter(func.lower(Component.name).contains(q.lower(), autoescape=True))
        if category:
            query = query.filter(Component.category == category)
        components = query.order_by(Component.name.asc()).all()
        # Tags live in a JSON column; membership is checked in Python so the
        # filter behaves the same on every backend
        if tag:
            components = [c for c in components if tag in (c.tags or [])]
        return components

    def update(self, component_id: str, data: Union[ComponentUpdate, dict]) -> Component:
        if isinstance(data, ComponentUpdate):
            data = data.model_dump(exclude_unset=True)
        obj = self.get(component_id)
        before = {"total": obj.total_quantity, "available": obj.available_quantity}
        try:
            self._apply_update(obj, data)
        except InventoryError:
            self.db.rollback()
            raise

        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConcurrencyConflict(f"Component {component_id} was modified concurrently, retry the update")
        self.db.refresh(obj)
        logger.info(
            f"Component updated: {component_id}",
            extra={'extra_fields': {
                'component_id': component_id,
                'total_before': before["total"], 'total_after': obj.total_quantity,
                'available_before': before["available"], 'available_after': obj.available_quantity,
            }}
        )
        return obj

    def _apply_update(self, obj: Component, data: dict) -> None:
        for field in ("name", "category"):
            if field in data:
                setattr(obj, field, _required_text(data[field], field))
        for field in ("description", "datasheet_link", "remarks"):
            if field in data:
                setattr(obj, field, str(data[field] or "").strip())
        if "tags" in data:
            obj.tags = normalize_tags(data["tags"])
        if "purchase_date" in data:
            obj.purchase_date = to_date(data["purchase_date"], "purchaseDate")
        if data.get("condition") is not None:
            condition = str(data["condition"]).strip().lower()
            if condition not in CONDITIONS:
                raise ValidationError(f"condition must be one of {', '.join(CONDITIONS)}")
            obj.condition = condition

        # Out-of-range numbers are ignored rather than rejected
        if data.get("total_quantity") is not None:
            new_total = to_int(data["total_quantity"], "totalQuantity")
            if new_total >= 0:
                # Keep the on-loan fraction across a recount
                old_total = obj.total_quantity or 1
                scaled = math.floor(obj.available_quantity * new_total / old_total + 0.5)
                obj.total_quantity = new_total
                obj.available_quantity = max(0, min(scaled, new_total))
        if data.get("available_quantity") is not None:
            new_available = to_int(data["available_quantity"], "availableQuantity")
            if 0 <= new_available <= obj.total_quantity:
                obj.available_quantity = new_available
        if data.get("threshold") is not None:
            new_threshold = to_int(data["threshold"], "threshold")
            if new_threshold >= 0:
                obj.threshold = new_threshold

    def delete(self, component_id: str) -> None:
        """Hard delete. Ledger rows keep their own name snapshot."""
        count = self._query(component_id).delete(synchronize_session=False)
        if not count:
            raise NotFound(f"Component {component_id} not found")
        self.db.commit()
        logger.info(f"Component deleted: {component_id}", extra={'extra_fields': {'component_id': component_id}})

    def adjust_available(self, component_id: str, delta: int, commit: bool = True) -> Component:
        """
        Atomically add ``delta`` to the available quantity.

        The bounds check and the write are one conditional UPDATE, so two
        callers racing for the last unit cannot both succeed.
        """
        delta = to_int(delta, "delta")
        new_available = Component.available_quantity + delta
        count = self._query(component_id).filter(
            new_available >= 0,
            new_available <= Component.total_quantity,
        ).update(
            {Component.available_quantity: new_available, Component.version: Component.version + 1},
            synchronize_session=False,
        )
        if count == 0:
            obj = self.get(component_id)
            raise InsufficientStock(
                f"Cannot change available quantity of {component_id} by {delta}: "
                f"{obj.available_quantity} of {obj.total_quantity} available"
            )
        if commit:
            self.db.commit()
        return self.get(component_id)

    def release(self, component_id: str, quantity: int, commit: bool = True) -> Optional[Component]:
        """
        Put returned units back, never going above the total.

        Returns None when the component no longer exists.
        """
        restored = Component.available_quantity + quantity
        count = self._query(component_id).update(
            {
                Component.available_quantity: case(
                    (restored > Component.total_quantity, Component.total_quantity),
                    else_=restored,
                ),
                Component.version: Component.version + 1,
            },
            synchronize_session=False,
        )
        if commit:
            self.db.commit()
        if count == 0:
            return None
        return self.get(component_id)

    def low_stock(self) -> list[Component]:
        return (
            self.db.query(Component)
            .filter(Component.available_quantity <= Component.threshold)
            .order_by(Component.available_quantity.asc(), Component.name.asc())
            .all()
        )

    def tags(self) -> list[str]:
        found = set()
        for (tags,) in self.db.query(Component.tags).all():
            found.update(tags or [])
        return sorted(found)

    def categories(self) -> list[str]:
        rows = self.db.query(Component.category).distinct().all()
        return sorted(category for (category,) in rows if category)

    def recommend(self, tags: list[str]) -> list[dict]:
        """Components sharing at least one tag, best match first."""
        wanted = set(normalize_tags(tags))
        if not wanted:
            return []
        matches = []
        for component in self.db.query(Component).all():
            score = len(wanted.intersection(component.tags or []))
            if score:
                matches.append({"component_id": component.component_id, "name": component.name, "match_score": score})
        matches.sort(key=lambda m: (-m["match_score"], m["name"]))
        return matches
