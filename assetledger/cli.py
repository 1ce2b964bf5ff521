#!/usr/bin/env python3
"""
AssetLedger Command Line Interface

Usage:
    assetledger demo [--db <file>]
    assetledger keygen --kid <id> --output <file>
    assetledger verify-export --export <file> --public-key <b64 | file>
"""

import argparse
import json
import sys
from pathlib import Path


def load_json(path: str) -> dict:
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def save_json(data: dict, path: str):
    """Save JSON to file."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)


def cmd_keygen(args):
    """Generate an Ed25519 key for signing history exports."""
    from assetledger.signing import generate_signing_key

    key_file, public_key_b64 = generate_signing_key(args.kid)
    save_json(key_file, args.output)
    print(f"Signing key saved to: {args.output}", file=sys.stderr)
    print(public_key_b64)
    return 0


def cmd_verify_export(args):
    """Verify a signed ownership-history export."""
    from assetledger.signing import verify_export

    bundle = load_json(args.export)
    public_key = args.public_key
    if Path(public_key).is_file():
        public_key = Path(public_key).read_text(encoding="utf-8").strip()

    valid, reason = verify_export(bundle, public_key)
    if valid:
        print(f"VALID: asset {bundle.get('asset_id')}, {len(bundle.get('entries', []))} transitions")
        return 0
    print(f"INVALID: {reason}")
    return 1


def cmd_demo(args):
    """Run a walkthrough of registration, access control, transfer and analytics."""
    from assetledger import (
        AccessPermissionDenied,
        AssetLedger,
        CallContext,
        DuplicateRegistration,
        InMemoryLedgerStore,
        LedgerConfig,
        SqliteLedgerStore,
    )

    store = SqliteLedgerStore(args.db) if args.db else InMemoryLedgerStore()
    ledger = AssetLedger(LedgerConfig(administrator="admin"), store=store)

    print("=" * 60)
    print("AssetLedger Demonstration")
    print("=" * 60)

    alice = CallContext(principal="alice", height=1)
    asset_id = ledger.register(
        alice, ledger.next_asset_id(),
        designation="North site survey",
        size_bytes=48_000_000,
        summary="Raw LIDAR capture of the north site",
        tags=["lidar", "survey", "north"],
    )
    print(f"\nRegistered asset {asset_id} owned by alice at height 1")

    try:
        ledger.register(alice, asset_id, "Copy", 1, "Duplicate attempt", ["dup"])
    except DuplicateRegistration as e:
        print(f"Second registration rejected: {e.code.value}")

    try:
        ledger.analyze(CallContext("bob", 2), asset_id)
    except AccessPermissionDenied as e:
        print(f"bob analytics before grant: {e.code.value}")

    ledger.grant(CallContext("alice", 3), asset_id, "bob", level="auditor")
    print("Granted bob 'auditor' access at height 3")

    entry = ledger.transfer_ownership(CallContext("alice", 120), asset_id, "carol", "sale")
    print(f"Transferred to carol at height 120 (sequence {entry.sequence})")

    print("\n" + "-" * 60)
    for height in (150, 300, 800, 1500):
        report = ledger.analyze(CallContext("bob", height), asset_id)
        print(f"height {height:>5}: tenure={report.tenure:<5} maturity={report.maturity_score:<4}"
              f"modification_age={report.modification_age:<5} viewers={report.access_complexity}")

    print("\n" + "-" * 60)
    print(f"History chain valid: {ledger.verify_history(asset_id)}")
    print(f"Performance score: {ledger.performance_score()}")
    for category, counter in ledger.metrics_snapshot().items():
        print(f"  {category}: {counter.value} (height {counter.updated_at})")

    print("\n" + "=" * 60)
    print("Demonstration complete.")
    print("=" * 60)
    store.close()
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="AssetLedger CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  assetledger demo                               Run demonstration
  assetledger keygen -k history-01 -o key.json   Generate export signing key
  assetledger verify-export -e export.json -p <public key b64>
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    demo_parser = subparsers.add_parser("demo", help="Run demonstration")
    demo_parser.add_argument("-d", "--db", help="SQLite file to use instead of memory")

    keygen_parser = subparsers.add_parser("keygen", help="Generate export signing key")
    keygen_parser.add_argument("-k", "--kid", required=True, help="Key identifier")
    keygen_parser.add_argument("-o", "--output", required=True, help="Output file for the private key")

    verify_parser = subparsers.add_parser("verify-export", help="Verify signed history export")
    verify_parser.add_argument("-e", "--export", required=True, help="Signed export JSON file")
    verify_parser.add_argument("-p", "--public-key", required=True,
                               help="Base64 public key, or a file containing it")

    args = parser.parse_args(argv)

    if args.command == "demo":
        return cmd_demo(args)
    elif args.command == "keygen":
        return cmd_keygen(args)
    elif args.command == "verify-export":
        return cmd_verify_export(args)
    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
