"""Marketplace notifications management CLI.

Schema management plus one-shot runs of the periodic scanners, for cron
jobs and operators.

Usage:
    python src/manage.py setup-db
    python src/manage.py drop-db
    python src/manage.py run-scanner scheduled|retry|webhooks|cleanup
"""

import argparse
import sys


def _domain():
    from notifications.domain import notifications

    notifications.init()
    return notifications


def setup_database():
    from notifications.utils.db import setup_db

    domain = _domain()
    print("Creating notifications database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    from notifications.utils.db import drop_db

    domain = _domain()
    print("Dropping notifications database schema...")
    drop_db(domain)
    print("Done.")


def run_scanner(name):
    from server import SCANNERS, run_pass

    _domain()
    result = run_pass(name, SCANNERS[name][0])
    print(f"{name}: {result}")


def main():
    parser = argparse.ArgumentParser(description="Marketplace notifications management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    scanner_parser = subparsers.add_parser("run-scanner", help="Run one periodic scanner pass")
    scanner_parser.add_argument("scanner", choices=["scheduled", "retry", "webhooks", "cleanup"])

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "run-scanner":
        run_scanner(args.scanner)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
