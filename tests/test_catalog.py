import typing
from datetime import date

import pytest

from labinventory.application.catalog import CatalogService
from labinventory.application.ledger import LedgerService
from labinventory.domain.errors import ConcurrencyConflict, InsufficientStock, NotFound, ValidationError
from labinventory.domain.models import BorrowingRecord, Component
from labinventory.infrastructure.db import SessionLocal

def test_create_sets_available_to_total_and_defaults(db):
    comp = CatalogService(db).create({"name": " ESP32 ", "category": "Microcontrollers", "total_quantity": 4})
    assert comp.component_id.startswith("COMP-")
    assert comp.name == "ESP32"
    assert comp.total_quantity == 4
    assert comp.available_quantity == 4
    assert comp.threshold == 5
    assert comp.condition == "good"
    assert comp.tags == []

@pytest.mark.parametrize("data", [
    {"category": "Sensors", "total_quantity": 1},
    {"name": "DHT11", "total_quantity": 1},
    {"name": "   ", "category": "Sensors"},
    {"name": "DHT11", "category": "Sensors", "total_quantity": -1},
    {"name": "DHT11", "category": "Sensors", "condition": "broken"},
])
def test_create_rejects_invalid_fields(db, data):
    with pytest.raises(ValidationError):
        CatalogService(db).create(data)

def test_get_unknown_component(db):
    with pytest.raises(NotFound):
        CatalogService(db).get("COMP-missing")

def test_list_filters_by_name_tag_and_category(db, make_component):
    make_component("Arduino Uno", tags=["arduino", "mcu"])
    make_component("Arduino Nano", tags=["arduino"])
    make_component("Ultrasonic Sensor", category="Sensors", tags=["distance"])
    service = CatalogService(db)

    assert [c.name for c in service.list(q="ARDUINO")] == ["Arduino Nano", "Arduino Uno"]
    assert [c.name for c in service.list(tag="mcu")] == ["Arduino Uno"]
    assert [c.name for c in service.list(category="Sensors")] == ["Ultrasonic Sensor"]
    assert service.list(q="100%") == []

def test_update_rescales_available_with_total(db, make_component):
    comp = make_component(total=10)
    service = CatalogService(db)
    service.adjust_available(comp.component_id, -4)

    updated = service.update(comp.component_id, {"total_quantity": 20})
    assert updated.total_quantity == 20
    assert updated.available_quantity == 12

    updated = service.update(comp.component_id, {"total_quantity": 5})
    assert updated.available_quantity == 3

def test_update_ignores_out_of_range_numbers(db, make_component):
    comp = make_component(total=10, threshold=5)
    service = CatalogService(db)

    updated = service.update(comp.component_id, {"available_quantity": 11, "threshold": -2})
    assert updated.available_quantity == 10
    assert updated.threshold == 5

    updated = service.update(comp.component_id, {"available_quantity": 6, "threshold": 2})
    assert updated.available_quantity == 6
    assert updated.threshold == 2

def test_update_metadata(db, make_component):
    comp = make_component()
    updated = CatalogService(db).update(comp.component_id, {
        "name": "Arduino Uno R3",
        "tags": "arduino, mcu, arduino",
        "condition": "Fair",
        "purchase_date": "2024-02-01",
    })
    assert updated.name == "Arduino Uno R3"
    assert updated.tags == ["arduino", "mcu"]
    assert updated.condition == "fair"
    assert updated.purchase_date == date(2024, 2, 1)

def test_update_rejects_blank_name_without_partial_write(db, make_component):
    comp = make_component(name="Servo")
    service = CatalogService(db)
    with pytest.raises(ValidationError):
        service.update(comp.component_id, {"description": "changed", "name": ""})
    fresh = service.get(comp.component_id)
    assert fresh.name == "Servo"
    assert fresh.description == ""

def test_update_conflicts_with_concurrent_stock_change(db, make_component, monkeypatch):
    comp = make_component(total=10)
    apply_update = CatalogService._apply_update

    def racing_apply(self, obj, data):
        other = SessionLocal()
        try:
            CatalogService(other).adjust_available(comp.component_id, -1)
        finally:
            other.close()
        apply_update(self, obj, data)

    monkeypatch.setattr(CatalogService, "_apply_update", racing_apply)
    with pytest.raises(ConcurrencyConflict):
        CatalogService(db).update(comp.component_id, {"name": "Renamed"})

    monkeypatch.undo()
    fresh = CatalogService(db).get(comp.component_id)
    assert fresh.name == "Arduino Uno"
    assert fresh.available_quantity == 9

def test_adjust_available_stays_within_bounds(db, make_component):
    comp = make_component(total=3)
    service = CatalogService(db)

    assert service.adjust_available(comp.component_id, -3).available_quantity == 0
    with pytest.raises(InsufficientStock):
        service.adjust_available(comp.component_id, -1)
    assert service.adjust_available(comp.component_id, 2).available_quantity == 2
    with pytest.raises(InsufficientStock):
        service.adjust_available(comp.component_id, 2)
    assert service.get(comp.component_id).available_quantity == 2

def test_adjust_available_unknown_component(db):
    with pytest.raises(NotFound):
        CatalogService(db).adjust_available("COMP-missing", -1)

def test_release_clamps_to_total(db, make_component):
    comp = make_component(total=5)
    service = CatalogService(db)
    service.adjust_available(comp.component_id, -1)
    assert service.release(comp.component_id, 3).available_quantity == 5
    assert service.release("COMP-missing", 1) is None

def test_delete(db, make_component):
    comp = make_component()
    service = CatalogService(db)
    service.delete(comp.component_id)
    with pytest.raises(NotFound):
        service.get(comp.component_id)
    with pytest.raises(NotFound):
        service.delete(comp.component_id)

def test_bulk_create_reports_each_row(db):
    report = CatalogService(db).bulk_create([
        {"name": "LED Red", "category": "LEDs", "totalQuantity": "50", "tags": "led,red"},
        {"name": "", "category": "LEDs"},
        {"name": "LED Blue", "category": "LEDs", "totalQuantity": "many"},
        {"name": "LED Green", "category": "LEDs", "totalQuantity": 20, "threshold": "10"},
    ])
    assert report["created"] == 2
    assert report["failed"] == 2
    assert [r["ok"] for r in report["results"]] == [True, False, False, True]
    assert report["results"][1]["error"] == "ValidationError"

    names = {c.name: c for c in CatalogService(db).list()}
    assert set(names) == {"LED Red", "LED Green"}
    assert names["LED Red"].available_quantity == 50
    assert names["LED Red"].tags == ["led", "red"]
    assert names["LED Green"].threshold == 10

def test_tags_categories_and_recommendations(db, make_component):
    make_component("Arduino Uno", tags=["arduino", "mcu", "usb"])
    make_component("Raspberry Pi", category="SBC", tags=["linux", "usb"])
    make_component("Relay", category="Actuators", tags=["switch"])
    service = CatalogService(db)

    assert service.tags() == ["arduino", "linux", "mcu", "switch", "usb"]
    assert service.categories() == ["Actuators", "Microcontrollers", "SBC"]

    ranked = service.recommend(["usb", "mcu"])
    assert [(r["name"], r["match_score"]) for r in ranked] == [("Arduino Uno", 2), ("Raspberry Pi", 1)]
    assert service.recommend([]) == []

def test_bulk_rows_accept_multi_word_camel_case_keys(db):
    report = CatalogService(db).bulk_create([{
        "name": "DHT22",
        "category": "Sensors",
        "totalQuantity": 6,
        "datasheetLink": "https://example.com/dht22.pdf",
        "purchaseDate": "2024-05-02",
    }])
    assert report["created"] == 1
    comp = CatalogService(db).get(report["results"][0]["id"])
    assert comp.datasheet_link == "https://example.com/dht22.pdf"
    assert comp.purchase_date == date(2024, 5, 2)

def test_service_return_types_name_builtin_list():
    assert typing.get_type_hints(CatalogService.low_stock)["return"] == list[Component]
    assert typing.get_type_hints(CatalogService.tags)["return"] == list[str]
    assert typing.get_type_hints(LedgerService.overdue)["return"] == list[BorrowingRecord]
