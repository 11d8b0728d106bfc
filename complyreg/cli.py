#!/usr/bin/env python3
"""
complyreg Command Line Interface

Usage:
    complyreg demo
    complyreg snapshot --db <file> [--output <file>]
    complyreg journal --db <file>
    complyreg keygen --principal <id> --output <file> [--trust-store <file>]
    complyreg sign --key <file> --method POST --path /institutions [--body <file>]
"""

import argparse
import json
import os
import sys

from .config import ENV, LOG_JSON, LOG_LEVEL
from .logging_config import configure_logging


def load_json(path: str) -> dict:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def save_json(data: dict, path: str):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)


def _open_ledger(db_path: str):
    from . import ComplianceLedger, SqliteStore, StoredHeightOracle

    if not os.path.exists(db_path):
        raise SystemExit(f"No registry database at {db_path}")
    store = SqliteStore(db_path)
    return ComplianceLedger(store, admin=None, height=StoredHeightOracle(store))


def cmd_snapshot(args):
    """Export all registry records as JSON."""
    ledger = _open_ledger(args.db)
    snapshot = ledger.snapshot()

    if args.output:
        save_json(snapshot, args.output)
        print(f"Snapshot saved to: {args.output}")
    else:
        print(json.dumps(snapshot, indent=2))
    return 0


def cmd_journal(args):
    """Verify the mutation journal hash chain."""
    ledger = _open_ledger(args.db)
    result = ledger.journal.verify()

    if result.valid:
        print(f"✓ journal intact ({result.entries_checked} entries)")
        return 0
    print(f"✗ journal broken at seq {result.broken_at}: {result.reason}")
    return 1


def cmd_keygen(args):
    """Generate an Ed25519 principal key and register it in a trust store."""
    from .signing import PrincipalKey

    key = PrincipalKey.generate(args.principal)
    save_json(key.to_dict(), args.output)
    print(f"Key saved to: {args.output}")

    if args.trust_store:
        trust = load_json(args.trust_store) if os.path.exists(args.trust_store) else {}
        trust.setdefault("principals", {})[key.principal] = key.public_key_b64()
        save_json(trust, args.trust_store)
        print(f"Trust store updated: {args.trust_store}")

    print(f"\nPrincipal: {key.principal}", file=sys.stderr)
    print(f"Public key: {key.public_key_b64()}", file=sys.stderr)
    return 0


def cmd_sign(args):
    """Print the authentication headers for one service request."""
    from .signing import PrincipalKey

    key = PrincipalKey.from_dict(load_json(args.key))
    body = load_json(args.body) if args.body else None
    print(json.dumps(key.headers(args.method, args.path, body), indent=2))
    return 0


def cmd_demo(args):
    """Run the full workflow on an in-memory ledger."""
    from . import (
        ComplianceLedger,
        InMemoryStore,
        ManualHeightOracle,
        RegistryError,
        content_digest,
    )

    admin = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
    submitter = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"

    print("=" * 60)
    print("Compliance Registry Demonstration")
    print("=" * 60)

    height = ManualHeightOracle(90)
    ledger = ComplianceLedger(InMemoryStore(), admin=admin, height=height)

    ctx = ledger.context(admin)
    ledger.institutions.register(ctx, "inst-001", "Example Bank", "123 Finance St", "LIC-12345")
    ledger.institutions.verify(ctx, "inst-001")
    ledger.requirements.add_requirement(
        ctx, "req-001", "Quarterly Report", "Financial statement for Q1", "quarterly", 30
    )
    ledger.requirements.assign_requirement(ctx, "inst-001", "req-001", 150)
    print(f"\nAssignment: {ledger.requirements.get_institution_requirement('inst-001', 'req-001')}")

    height.set(100)
    ctx = ledger.context(submitter)
    for sid, payload in (("sub-001", "balance sheet"), ("sub-002", "income statement")):
        ledger.submissions.submit_data(
            ctx, sid, "inst-001", "req-001", content_digest(payload),
            f"ipfs://{sid}", "json", "Q1 financial data"
        )
    print(f"Submission: {ledger.submissions.get_submission('sub-001')}")

    ctx = ledger.context(admin)
    ledger.submissions.validate_submission(ctx, "sub-001", "approved")
    ledger.submissions.validate_submission(ctx, "sub-002", "approved")

    print("\n" + "-" * 60)
    print("Scenario: approving sub-001 a second time")
    print("-" * 60)
    try:
        ledger.submissions.validate_submission(ctx, "sub-001", "approved")
    except RegistryError as exc:
        print(f"  Rejected: {exc.code.value} - {exc.message}")

    ctx = ledger.context(submitter)
    ledger.reports.generate_report(
        ctx, "rep-001", "inst-001", "req-001", ["sub-001", "sub-002"],
        content_digest("Q1 report"), "ipfs://rep-001", "pdf", "Q1 financial report"
    )
    ledger.reports.finalize_report(ledger.context(admin), "rep-001")
    print(f"\nReport: {ledger.reports.get_report('rep-001')}")

    ctx = ledger.context(admin)
    ledger.verifications.verify_submission(ctx, "ver-001", "inst-001", "req-001", "rep-001", 95, 100)
    ledger.verifications.verify_submission(ctx, "ver-002", "inst-001", "req-001", "rep-001", 105, 100)
    for vid in ("ver-001", "ver-002"):
        print(f"{vid} timely: {ledger.verifications.is_submission_timely(vid)}")

    chain = ledger.journal.verify()
    print(f"\nJournal: {chain.entries_checked} entries, valid={chain.valid}")

    print("\n" + "=" * 60)
    print("Demonstration complete.")
    print("=" * 60)
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Compliance registry CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  complyreg demo                          Run demonstration
  complyreg snapshot --db data/complyreg.db -o snapshot.json
  complyreg journal --db data/complyreg.db
  complyreg keygen -p ST1ADMIN -o admin_key.json -t trust/principals.json
  complyreg sign -k admin_key.json -m POST -P /institutions -b body.json
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    snapshot_parser = subparsers.add_parser("snapshot", help="Export registry records")
    snapshot_parser.add_argument("-d", "--db", required=True, help="Registry SQLite database")
    snapshot_parser.add_argument("-o", "--output", help="Output file for snapshot")

    journal_parser = subparsers.add_parser("journal", help="Verify the journal hash chain")
    journal_parser.add_argument("-d", "--db", required=True, help="Registry SQLite database")

    keygen_parser = subparsers.add_parser("keygen", help="Generate a principal key pair")
    keygen_parser.add_argument("-p", "--principal", required=True, help="Principal identity")
    keygen_parser.add_argument("-o", "--output", required=True, help="Output file for the key")
    keygen_parser.add_argument("-t", "--trust-store", help="Trust store to add the public key to")

    sign_parser = subparsers.add_parser("sign", help="Sign a service request")
    sign_parser.add_argument("-k", "--key", required=True, help="Principal key JSON file")
    sign_parser.add_argument("-m", "--method", required=True, help="HTTP method")
    sign_parser.add_argument("-P", "--path", required=True, help="Request path")
    sign_parser.add_argument("-b", "--body", help="Request body JSON file")

    subparsers.add_parser("demo", help="Run demonstration")

    args = parser.parse_args()
    configure_logging(LOG_LEVEL, json_format=LOG_JSON, env=ENV)

    if args.command == "snapshot":
        sys.exit(cmd_snapshot(args))
    elif args.command == "journal":
        sys.exit(cmd_journal(args))
    elif args.command == "keygen":
        sys.exit(cmd_keygen(args))
    elif args.command == "sign":
        sys.exit(cmd_sign(args))
    elif args.command == "demo":
        sys.exit(cmd_demo(args))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
