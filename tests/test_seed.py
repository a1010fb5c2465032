from labinventory.application.catalog import CatalogService
from labinventory.auth_local import decode_access_token
from labinventory.seed import main, read_rows

CSV = (
    "name,category,totalQuantity,threshold,tags\n"
    'Arduino Uno,Microcontrollers,10,,"arduino, mcu"\n'
    ",Sensors,4,2,\n"
)

def test_read_rows_drops_blank_cells(tmp_path):
    path = tmp_path / "components.csv"
    path.write_text(CSV, encoding="utf-8")
    rows = read_rows(path)
    assert rows[0] == {"name": "Arduino Uno", "category": "Microcontrollers", "totalQuantity": "10", "tags": "arduino, mcu"}
    assert rows[1] == {"category": "Sensors", "totalQuantity": "4", "threshold": "2"}

def test_seed_imports_rows_and_prints_token(db, tmp_path, capsys):
    path = tmp_path / "components.csv"
    path.write_text(CSV, encoding="utf-8")

    assert main([str(path), "--admin", "lab-admin"]) == 1

    out = capsys.readouterr().out.strip().splitlines()
    assert "Imported 1 component(s), 1 failed." in out
    principal = decode_access_token(out[-1])
    assert principal.user_id == "lab-admin"
    assert principal.is_admin

    (comp,) = CatalogService(db).list()
    assert comp.name == "Arduino Uno"
    assert comp.threshold == 5
    assert comp.tags == ["arduino", "mcu"]
