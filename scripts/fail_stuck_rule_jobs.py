#!/usr/bin/env python3
"""
Mark rule jobs that are stuck in pending/processing as failed.

Jobs get stuck when a worker is killed mid-run. They are not re-run: a
partially processed job may already have sent some of its emails.
"""

import argparse
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from database import get_db_context
from models import EmailRuleJob, RuleJobStatus

STUCK_STATUSES = (RuleJobStatus.PENDING.value, RuleJobStatus.PROCESSING.value)


def find_stuck_jobs(db, older_than: timedelta):
    cutoff = datetime.now(timezone.utc) - older_than
    return (
        db.query(EmailRuleJob)
        .filter(EmailRuleJob.status.in_(STUCK_STATUSES), EmailRuleJob.created_at < cutoff)
        .order_by(EmailRuleJob.created_at.asc())
        .all()
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--minutes", type=int, default=30, help="Only jobs older than this (default 30)")
    parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    args = parser.parse_args(argv)

    with get_db_context(commit=True) as db:
        jobs = find_stuck_jobs(db, timedelta(minutes=args.minutes))
        if not jobs:
            print("✓ No stuck rule jobs found")
            return 0

        print(f"Found {len(jobs)} stuck rule jobs:")
        for job in jobs:
            print(f"  - {job.id}: {job.status} at {job.current_step or '-'} (created: {job.created_at})")

        if not args.yes:
            response = input(f"\nMark all {len(jobs)} jobs as failed? (yes/no): ")
            if response.lower() != "yes":
                print("Cancelled")
                db.rollback()
                return 1

        now = datetime.now(timezone.utc)
        for job in jobs:
            job.status = RuleJobStatus.FAILED.value
            job.error_message = "Worker stopped before the job finished"
            job.completed_at = now

    print(f"✓ Marked {len(jobs)} rule jobs as failed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
