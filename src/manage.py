"""Commerce database management CLI.

Creates and drops the schema of the commerce domain on SQL providers.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py check-config
"""

import argparse
import sys


def setup_database():
    from commerce.domain import commerce
    from commerce.utils.db import setup_db

    print("Initializing commerce domain...")
    commerce.init()
    print("Creating commerce database schema...")
    setup_db(commerce)
    print("Done.")


def drop_database():
    from commerce.domain import commerce
    from commerce.utils.db import drop_db

    print("Initializing commerce domain...")
    commerce.init()
    print("Dropping commerce database schema...")
    drop_db(commerce)
    print("Done.")


def check_config() -> int:
    """Validate the environment the way the server does at startup."""
    from commerce.config import Settings
    from commerce.errors import ConfigurationError

    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        for problem in exc.problems:
            print(f"  - {problem}")
        return 1

    print(
        f"Configuration OK (environment={settings.environment}, "
        f"payment_provider={settings.payment_provider.value}, "
        f"oversell_policy={settings.oversell_policy.value})"
    )
    return 0


def main():
    parser = argparse.ArgumentParser(description="Commerce database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("check-config", help="Validate environment configuration")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "check-config":
        sys.exit(check_config())
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
