#!/usr/bin/env python3
"""
Ads Account Extractor — Entry Point.

This is the main script that users run to extract account, campaign and report
data from the ads platform's query API. It reads configuration from a .env
file, runs the extraction pipeline and writes CSV tables with manifests under
DATA_DIR/out/tables.

The extraction pipeline (managed by ExtractionOrchestrator) performs:
  1. Authenticate with the OAuth refresh token
  2. Extract the customers of every configured root account
  3. Extract the campaigns of every customer
  4. Extract the configured report of every customer (with retries)
  5. Save run metadata to extraction_results.json

The list-accounts action instead discovers the manager / client hierarchy
reachable with the credentials and prints it as JSON.

Usage:
    python run.py                      # Run the extraction
    python run.py --debug              # Verbose output
    python run.py --list-accounts      # Print the account hierarchy
    python run.py --list-accounts --children --output accounts.json
    python run.py --version            # Show version
    python run.py --env /path          # Use alternate .env file
"""

import sys
import json
import logging
import argparse
from pathlib import Path

from core import ExtractionOrchestrator, UserError

# Read version from the VERSION file next to this script (e.g., "0.1.0").
VERSION_FILE = Path(__file__).resolve().parent / "VERSION"
VERSION = VERSION_FILE.read_text().strip() if VERSION_FILE.exists() else "unknown"


def list_accounts(orchestrator: ExtractionOrchestrator, include_children: bool, output: str = None) -> int:
    """Run the list-accounts action. Returns the process exit code."""
    if not orchestrator.validate_config(list_accounts=True):
        return 1

    try:
        forest = orchestrator.list_accounts(include_children)
    except UserError as e:
        print(f"\n  ERROR: {e}")
        return 1

    payload = json.dumps(forest, indent=2)
    if output:
        with open(output, "w") as f:
            f.write(payload)
        print(f"  Account hierarchy saved to: {output}")
    else:
        print(payload)
    return 0


def main():
    """Parse CLI arguments and run the extraction pipeline."""
    parser = argparse.ArgumentParser(
        description="Ads Account Extractor - Extract accounts, campaigns and reports to CSV tables"
    )
    parser.add_argument("--env", "-e", default="./.env", help="Path to .env file")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--list-accounts", action="store_true", help="Print the account hierarchy and exit")
    parser.add_argument("--children", action="store_true", help="Include sub-accounts when listing accounts")
    parser.add_argument("--output", "-o", help="Write the account hierarchy to this file")
    parser.add_argument("--version", "-v", action="store_true", help="Show version and exit")

    args = parser.parse_args()

    if args.version:
        print(f"ads-account-extractor {VERSION}")
        sys.exit(0)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG)

    # Initialize the orchestrator (loads .env and builds internal config)
    orchestrator = ExtractionOrchestrator(env_file=args.env)

    # Apply CLI overrides on top of .env values
    if args.debug:
        orchestrator.debug = True
        orchestrator.writer.debug = True

    if args.list_accounts:
        include_children = args.children or orchestrator.config.include_children
        sys.exit(list_accounts(orchestrator, include_children, args.output))

    # Print header
    print(f"\n{'='*60}")
    print(f"ADS ACCOUNT EXTRACTOR v{VERSION}")
    print("="*60)
    print(f"Customers: {', '.join(orchestrator.config.customer_ids) or '-'}")
    print(f"Report: {orchestrator.config.report_table}")
    print(f"Output: {orchestrator.writer.tables_dir}")

    # Validate required configuration before proceeding
    if not orchestrator.validate_config():
        sys.exit(1)

    results = orchestrator.run()

    # Print final summary
    orchestrator.print_summary(results)

    # Exit with error code if extraction failed
    if not results.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
