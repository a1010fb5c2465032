"""
Seed the catalog from a CSV export and print a development admin token.

    labinventory-seed components.csv --admin alice

Columns use the API field names (name, category, totalQuantity, threshold,
tags, ...). Tags may be comma separated inside one quoted cell. Rows are
created independently; failures are reported per row.
"""

import argparse
import csv
import json
import time
from pathlib import Path

from sqlalchemy.exc import OperationalError

from labinventory.application.catalog import CatalogService
from labinventory.auth_local import ADMIN, create_access_token
from labinventory.infrastructure.db import SessionLocal, engine, init_models

MAX_ATTEMPTS = 30
SLEEP_SECONDS = 2

def wait_for_db(max_attempts: int = MAX_ATTEMPTS, delay: float = SLEEP_SECONDS) -> None:
    last_error = None
    for attempt in range(max_attempts):
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
            return
        except OperationalError as e:
            last_error = e
            print(f"Waiting for database ({attempt + 1}/{max_attempts}): {e.orig}")
            time.sleep(delay)
    raise SystemExit(f"Database unavailable after {max_attempts} attempts: {last_error}")

def read_rows(path: Path) -> list[dict]:
    with path.open(newline="", encoding="utf-8-sig") as fh:
        # Blank cells mean "use the default", not "empty value"
        return [{k: v for k, v in row.items() if k and v not in (None, "")} for row in csv.DictReader(fh)]

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("csv_file", nargs="?", type=Path, help="Component CSV to import")
    parser.add_argument("--admin", metavar="USER_ID", help="Print an admin bearer token for USER_ID")
    args = parser.parse_args(argv)

    wait_for_db()
    init_models()

    failed = 0
    if args.csv_file:
        rows = read_rows(args.csv_file)
        db = SessionLocal()
        try:
            report = CatalogService(db).bulk_create(rows)
        finally:
            db.close()
        print(f"Imported {report['created']} component(s), {report['failed']} failed.")
        for result in report["results"]:
            if not result["ok"]:
                print(json.dumps(result))
        failed = report["failed"]

    if args.admin:
        print(create_access_token(args.admin, role=ADMIN))
    return 1 if failed else 0

if __name__ == "__main__":
    raise SystemExit(main())
