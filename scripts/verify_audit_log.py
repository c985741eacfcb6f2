"""Verify the hash chain of every daily audit log in a directory.

Usage:
    python scripts/verify_audit_log.py --log-dir ./logs/audit
    python scripts/verify_audit_log.py --date 2026-01-28
"""

import argparse
import sys

from trustgate.common.config import get_config
from trustgate.governance.audit.store import AuditLogIntegrityError, FileAuditStore


def log_dates(store: FileAuditStore) -> list[str]:
    prefix, _, suffix = store.log_filename_pattern.partition("{date}")
    return [
        path.name[len(prefix):len(path.name) - len(suffix)]
        for path in store.get_log_files()
    ]


def main() -> int:
    parser = argparse.ArgumentParser(description="Verify TrustGate audit log integrity")
    parser.add_argument("--log-dir", type=str, default=None, help="Audit log directory")
    parser.add_argument("--date", type=str, default=None, help="Only verify this day (YYYY-MM-DD)")
    args = parser.parse_args()

    log_dir = args.log_dir or get_config().audit_log_dir
    store = FileAuditStore(log_dir=log_dir)
    dates = [args.date] if args.date else log_dates(store)

    print("=" * 60)
    print(f"Audit log: {store.log_dir}")
    print("=" * 60)

    if not dates:
        print("No audit logs found.")
        return 0

    failures = 0
    for date in dates:
        try:
            store.verify_integrity(date)
            print(f"✅ {date}")
        except AuditLogIntegrityError as e:
            failures += 1
            print(f"❌ {date}: {e}")

    print("=" * 60)
    print(f"{len(dates) - failures}/{len(dates)} daily logs intact")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
