#!/usr/bin/env python3
"""
smsledger CLI - bank SMS transaction ledger.

Usage:
    smsledger parse --sender VM-HDFCBK --body "Rs.500 debited from A/C XX1234 to SWIGGY"
    smsledger discover inbox.csv --output banks.xlsx --db ledger.db
    smsledger ingest inbox.csv --db ledger.db --config ingestion.json
"""

import argparse
import logging
import sys
from typing import List, Optional

from smsledger.core.bank_directory import BankDirectory
from smsledger.core.config import IngestionConfig
from smsledger.core.exceptions import SmsLedgerError
from smsledger.core.models import millis_to_datetime
from smsledger.core.store import SqliteLedgerStore
from smsledger.parsers.sms.extractor import TransactionExtractor
from smsledger.parsers.sms.loader import load_sms_export
from smsledger.services.bank_discovery import BankDiscoveryScanner, write_discovery_report
from smsledger.services.ingestion import DecisionType, IngestionCoordinator

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, debug: bool = False):
    """Configure logging."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def load_directory(args) -> BankDirectory:
    if getattr(args, "banks", None):
        return BankDirectory.from_json(args.banks)
    return BankDirectory.default()


def load_config(args) -> IngestionConfig:
    if getattr(args, "config", None):
        return IngestionConfig.from_json(args.config)
    return IngestionConfig()


def cmd_parse(args) -> int:
    """Handle parse command - extract one SMS."""
    extractor = TransactionExtractor(load_directory(args))
    parsed = extractor.extract(args.body, args.sender)

    if parsed is None:
        print("Not a transaction")
        return 0

    print("=" * 60)
    print("PARSED TRANSACTION")
    print("=" * 60)
    print(f"  Type:        {'DEBIT' if parsed.is_debit else 'CREDIT'}")
    print(f"  Amount:      {parsed.amount:,.2f}")
    fields = [
        ("Merchant", parsed.merchant_name),
        ("Account", f"****{parsed.account_hint}" if parsed.account_hint else None),
        ("Bank", parsed.bank_name),
        ("Card", parsed.card_type.value if parsed.card_type else None),
        ("UPI ID", parsed.upi_id),
        ("Reference", parsed.reference_number),
        ("From", parsed.sender_name),
        ("To", parsed.receiver_name),
    ]
    for label, value in fields:
        if value:
            print(f"  {label + ':':<12} {value}")
    return 0


def cmd_discover(args) -> int:
    """Handle discover command - find banks in an SMS export."""
    messages = load_sms_export(args.file, args.since)
    scanner = BankDiscoveryScanner(load_directory(args), load_config(args))
    result = scanner.scan(messages)

    print("=" * 60)
    print(f"BANK DISCOVERY - {result.scanned_count} messages scanned")
    print("=" * 60)

    if result.detected_banks:
        print("\nKnown banks:")
        for bank in result.detected_banks:
            new_ids = f"  [new: {', '.join(bank.new_sender_ids)}]" if bank.has_new_sender_ids else ""
            print(f"  {bank.bank_name:<30} {bank.transaction_count:>5} txns  "
                  f"{', '.join(bank.sender_ids)}{new_ids}")

    if result.unknown_senders:
        print("\nUnknown senders:")
        for bank in result.unknown_senders:
            last = millis_to_datetime(bank.last_transaction_timestamp).strftime("%Y-%m-%d")
            print(f"  {bank.bank_name:<30} {bank.transaction_count:>5} txns  last {last}")

    if not result.all_banks:
        print("\nNo financial senders found")

    if args.output:
        path = write_discovery_report(result, args.output)
        print(f"\nReport: {path}")

    if args.db:
        with SqliteLedgerStore(args.db) as store:
            saved = store.save_discovered_banks(result)
        print(f"Saved {saved} banks to {args.db}")

    return 0


def cmd_ingest(args) -> int:
    """Handle ingest command - ingest an SMS export into the ledger."""
    config = load_config(args)
    messages = load_sms_export(args.file, args.since)

    with SqliteLedgerStore(args.db) as store:
        coordinator = IngestionCoordinator(store, config, load_directory(args))
        result = coordinator.process_batch(messages)

    print("=" * 60)
    print("SMS INGESTION")
    print("=" * 60)
    print(f"  Processed:         {result.transactions_processed}")
    print(f"  Inserted:          {result.transactions_inserted}")
    print(f"  Merged (recurring): {result.transactions_merged}")
    print(f"  Duplicates:        {result.transactions_skipped}")
    print(f"  Not transactions:  {result.not_transactions}")
    print(f"  Skipped senders:   {result.irrelevant_senders}")
    print(f"  Saved as pending:  {result.pending_saved}")

    if args.verbose:
        for decision in result.decisions:
            if decision.decision in (DecisionType.INSERTED, DecisionType.MERGED):
                print(f"  {decision.decision.value:<9} {decision.transaction.note}")

    if result.errors:
        print("\nErrors:")
        for error in result.errors[:10]:
            print(f"  - {error}")
        return 1

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='smsledger',
        description='smsledger - bank SMS transaction ledger',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  smsledger parse --sender VM-HDFCBK --body "Rs.500 debited from A/C XX1234 to SWIGGY"
  smsledger discover inbox.csv --output banks.xlsx
  smsledger ingest inbox.csv --db ledger.db
        """
    )

    # Global arguments
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--debug', action='store_true', help='Debug output')
    parser.add_argument('--banks', help='Bank registry JSON (default: built-in)')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    # parse command
    parse_parser = subparsers.add_parser('parse', help='Parse a single SMS')
    parse_parser.add_argument('--sender', '-s', default='', help='Sender ID (e.g. VM-HDFCBK)')
    parse_parser.add_argument('--body', '-b', required=True, help='SMS text')

    # discover command
    discover_parser = subparsers.add_parser('discover', help='Discover banks in an SMS export')
    discover_parser.add_argument('file', help='SMS export (CSV/XLS/XLSX)')
    discover_parser.add_argument('--output', '-o', help='Excel report path')
    discover_parser.add_argument('--db', help='Save discovered banks to this ledger database')
    discover_parser.add_argument('--config', '-c', help='Ingestion config JSON')
    discover_parser.add_argument('--since', type=int, help='Only messages at/after this epoch millis')

    # ingest command
    ingest_parser = subparsers.add_parser('ingest', help='Ingest an SMS export into the ledger')
    ingest_parser.add_argument('file', help='SMS export (CSV/XLS/XLSX)')
    ingest_parser.add_argument('--db', required=True, help='Ledger database path')
    ingest_parser.add_argument('--config', '-c', help='Ingestion config JSON')
    ingest_parser.add_argument('--since', type=int, help='Only messages at/after this epoch millis')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.debug)

    handlers = {
        'parse': cmd_parse,
        'discover': cmd_discover,
        'ingest': cmd_ingest,
    }

    try:
        return handlers[args.command](args)
    except KeyboardInterrupt:
        print("\nOperation cancelled")
        return 130
    except SmsLedgerError as e:
        print(f"\nError: {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        return 1
    except OSError as e:
        print(f"\nError: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
