#!/usr/bin/env python3
"""
Backfill stable ids for form fields created before stable ids existed, and
rewrite email rule conditions that still reference ephemeral field ids.

    python scripts/backfill_stable_ids.py --dry-run
    python scripts/backfill_stable_ids.py --form-id <uuid>
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from database import SessionLocal
from models import Form
from services.rule_maintenance import backfill_form
from utils.uuid_helpers import ensure_uuid


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Backfill form field stable ids")
    parser.add_argument("--form-id", help="Only this form (default: every form)")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without saving them")
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        if args.form_id:
            form_ids = [ensure_uuid(args.form_id)]
        else:
            form_ids = [row.id for row in db.query(Form.id).order_by(Form.created_at.asc()).all()]

        total_fields = 0
        total_rules = 0
        for form_id in form_ids:
            assigned, stats = backfill_form(db, form_id, dry_run=args.dry_run)
            if not assigned and not stats.rules_updated:
                continue

            print(f"Form {form_id}:")
            for ephemeral_id, stable_id in assigned.items():
                print(f"  field {ephemeral_id} -> {stable_id}")
            print(
                f"  rules updated: {stats.rules_updated}/{stats.rules_checked}, "
                f"conditions: {stats.conditions_updated}, recipient fields: {stats.recipient_fields_updated}"
            )
            for rule_id in stats.unparseable_rules:
                print(f"  ! rule {rule_id} has unparseable conditions, left unchanged")

            total_fields += len(assigned)
            total_rules += stats.rules_updated

        verb = "Would update" if args.dry_run else "Updated"
        print(f"✓ {verb} {total_fields} fields and {total_rules} rules across {len(form_ids)} forms")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
