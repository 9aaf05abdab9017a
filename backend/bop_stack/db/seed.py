"""
Seed the flange catalog.

Usage:
    python -m bop_stack.db.seed                  # small built-in sample catalog
    python -m bop_stack.db.seed flanges.xlsx     # import a catalog file
    python -m bop_stack.db.seed flanges.xlsx --replace
"""

import sys

from bop_stack.db.database import SessionLocal, init_db
from bop_stack.models.flange_spec import FlangeSpec
from bop_stack.services.ingestion_service import import_catalog, parse_catalog_file, process_rows

# Same headers as the "Common Flanges" / "Size Scale" sheets
SAMPLE_FLANGE_ROWS = [
    {"Flange size": "7-1/16 5M", "# of bolts": 8, "Size of bolts": "1-3/8", "Wrench": 3, "Truck Unit PSI": 4500,
     "Ring needed": "R-46", "Annular Pressure": 5000, "Single B.O.P (RAM)": 5000,
     "Double B.O.P (Double Rams)": 5000, "Mud Cross": 5000},
    {"Flange size": "11 5M", "# of bolts": 12, "Size of bolts": "1-7/8", "Wrench": 5, "Truck Unit PSI": 6800,
     "Ring needed": "R-54", "Annular Pressure": 5000, "Single B.O.P (RAM)": 5000,
     "Double B.O.P (Double Rams)": 5000, "Mud Cross": 5000},
    {"Flange size": "13-5/8 3M", "# of bolts": 16, "Size of bolts": "1-3/8", "Wrench": 3, "Truck Unit PSI": 4500,
     "Ring needed": "R-57", "Annular Pressure": 3000, "Single B.O.P (RAM)": 3000,
     "Double B.O.P (Double Rams)": 3000, "Mud Cross": "-"},
    {"Flange size": "13-5/8 5M", "# of bolts": 16, "Size of bolts": "1-5/8", "Wrench": 4, "Truck Unit PSI": 5600,
     "Ring needed": "BX-160", "Annular Pressure": 5000, "Single B.O.P (RAM)": 5000,
     "Double B.O.P (Double Rams)": 5000, "Mud Cross": 5000},
    {"Flange size": "13-5/8 10M", "# of bolts": 20, "Size of bolts": "1-7/8", "Wrench": 5, "Truck Unit PSI": 6800,
     "Ring needed": "BX-159", "Annular Pressure": 10000, "Single B.O.P (RAM)": 10000,
     "Double B.O.P (Double Rams)": 10000, "Mud Cross": 10000},
    {"Flange size": "21-1/4 2M", "# of bolts": 24, "Size of bolts": "1-5/8", "Wrench": 4, "Truck Unit PSI": 5600,
     "Ring needed": "R-73", "Annular Pressure": 2000, "Single B.O.P (RAM)": "",
     "Double B.O.P (Double Rams)": "", "Mud Cross": ""},
]

SAMPLE_WRENCH_ROWS = [
    {"Wrench #": 3, "Stud diameter (inches)": "1-3/8", "Truck Unit PSI setting": 4500},
    {"Wrench #": 4, "Stud diameter (inches)": "1-5/8", "Truck Unit PSI setting": 5600},
    {"Wrench #": 5, "Stud diameter (inches)": "1-7/8", "Truck Unit PSI setting": 6800},
]


def seed_database(path: str = None, replace: bool = False):
    """Load a catalog file, or the sample catalog into an empty database."""

    init_db()
    db = SessionLocal()

    try:
        if path:
            with open(path, "rb") as f:
                parsed = parse_catalog_file(path, f.read())
        else:
            # Check if already seeded
            if db.query(FlangeSpec).first():
                print("Database already seeded")
                return
            parsed = process_rows(SAMPLE_FLANGE_ROWS, SAMPLE_WRENCH_ROWS)

        summary, error = import_catalog(db, parsed, replace=replace)

        if error:
            print(error)
            sys.exit(1)

        print(
            f"Seeded {summary.total} flange specs ({summary.created} new, {summary.updated} updated, "
            f"{summary.removed} removed) and {summary.wrench_settings} wrench settings"
        )
        for warning in summary.warnings:
            print(f"  warning: {warning}")

    finally:
        db.close()


if __name__ == "__main__":
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    seed_database(args[0] if args else None, replace="--replace" in sys.argv)
