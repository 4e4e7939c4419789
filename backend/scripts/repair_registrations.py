#!/usr/bin/env python3
"""
Registration Cache Repair Script

Out-of-band repair for the best-effort registration cache:
- backfills cid_hash on rows written without one
- lists rows that never received an ipId (ledger registration may have
  succeeded while the anchor write failed)
- optionally anchors a known ipId for a cid by hand

Usage:
    python -m scripts.repair_registrations backfill
    python -m scripts.repair_registrations stale [--minutes 30]
    python -m scripts.repair_registrations anchor <cid> <ip_id> [<tx_hash>]
"""
import argparse
import os
import sys
from datetime import datetime, timedelta, timezone

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from remixhub.config import get_settings
from remixhub.database import Database
from remixhub.errors import RegistryError
from remixhub.services.hashing import cid_hash
from remixhub.services.registry import AnchorWriter, RegistrationCache


def backfill_hashes(cache: RegistrationCache) -> int:
    """Fill missing cid_hash values. Returns the number of rows repaired."""
    writer = AnchorWriter(cache)
    repaired = 0
    for row in cache.rows_missing_hash():
        writer.anchor(row.cid, cid_hash=cid_hash(row.cid))
        repaired += 1
        print(f"  backfilled {row.cid}")
    return repaired


def report_stale(cache: RegistrationCache, minutes: int) -> int:
    """Print rows still missing an ipId after `minutes`. Returns the count."""
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=minutes)
    rows = cache.rows_missing_ip_id(created_before=cutoff)
    for row in rows:
        print(f"  {row.cid}  hash={row.cid_hash}  created={row.created_at}")
    return len(rows)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Repair the registration cache")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("backfill", help="Backfill missing cid hashes")
    stale = sub.add_parser("stale", help="List rows without an ipId")
    stale.add_argument("--minutes", type=int, default=30)
    anchor = sub.add_parser("anchor", help="Anchor a known ipId for a cid")
    anchor.add_argument("cid")
    anchor.add_argument("ip_id")
    anchor.add_argument("tx_hash", nargs="?")
    args = parser.parse_args(argv)

    settings = get_settings()
    database = Database(settings.database_url).connect()
    db = database.session()
    cache = RegistrationCache(db)
    try:
        if args.command == "backfill":
            print(f"Backfilled {backfill_hashes(cache)} row(s).")
        elif args.command == "stale":
            print(f"{report_stale(cache, args.minutes)} row(s) without ipId.")
        else:
            record = AnchorWriter(cache).anchor(
                args.cid, ip_id=args.ip_id, anchor_tx_hash=args.tx_hash, tx_hash=args.tx_hash
            )
            print(f"Anchored {record.cid} -> {record.ip_id}")
        return 0
    except RegistryError as e:
        print(f"Error: {e}")
        return 1
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    sys.exit(main())
