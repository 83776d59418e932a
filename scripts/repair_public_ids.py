import argparse

from app.db import SessionLocal
from app.logging import configure_logging
from app.services.public_ids import propagate_public_ids


def main():
    parser = argparse.ArgumentParser(
        description="Copy each lead's public id onto quotes, orders and dispatches that drifted."
    )
    parser.add_argument("--dry-run", action="store_true", help="Compute counts without writing.")
    args = parser.parse_args()

    configure_logging()
    db = SessionLocal()
    try:
        counts = propagate_public_ids(db, dry_run=args.dry_run)
        for table, updated in counts.items():
            print(f"{table}: {updated} {'to update' if args.dry_run else 'updated'}")
        print(f"total: {sum(counts.values())}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
