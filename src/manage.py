"""Storefront management CLI.

Usage:
    python src/manage.py setup-db          # Create all tables
    python src/manage.py drop-db           # Drop all tables
    python src/manage.py release-expired   # Release stale inventory reservations
"""

import argparse
import sys


def _domain():
    from storefront.domain import storefront

    storefront.init()
    return storefront


def setup_database():
    from storefront.utils.db import setup_db

    domain = _domain()
    print("Creating storefront database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    from storefront.utils.db import drop_db

    domain = _domain()
    print("Dropping storefront database schema...")
    drop_db(domain)
    print("Done.")


def release_expired():
    from storefront.inventory.maintenance import ReleaseExpiredReservations

    domain = _domain()
    with domain.domain_context():
        released = domain.process(ReleaseExpiredReservations(), asynchronous=False)
    print(f"Released {released or 0} expired reservation(s).")


def main():
    parser = argparse.ArgumentParser(description="Storefront management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("release-expired", help="Release inventory reservations past their expiry")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "release-expired":
        release_expired()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
