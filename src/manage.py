"""Artisan Market database management CLI.

Creates and drops the schema for every bounded context on the configured
database (``MARKETPLACE_DATABASE_URL``), and seeds catalogue products for
local checkout runs.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
    python src/manage.py add-product "Alebrije de cobre" 120.00 --image https://...
"""

import argparse
import sys

from catalogue.product.management import ProductCatalogue
from shared.config import get_settings
from shared.database import get_database
from shared.logging import configure_logging


def setup_databases():
    """Create all tables registered by the bounded contexts."""
    database = get_database()
    print(f"Creating schema on {database.engine.url.render_as_string(hide_password=True)}...")
    database.setup_db()
    print("Done.")


def drop_databases():
    """Drop all tables registered by the bounded contexts."""
    database = get_database()
    print(f"Dropping schema on {database.engine.url.render_as_string(hide_password=True)}...")
    database.drop_db()
    print("Done.")


def add_product(args):
    catalogue = ProductCatalogue(get_database())
    product_id = catalogue.add_product(
        name=args.name,
        price=args.price,
        store_id=args.store_id,
        description=args.description,
        images=[{"url": url, "is_principal": position == 0} for position, url in enumerate(args.image or [])],
        status=args.status,
    )
    print(product_id)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Artisan Market database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    product_parser = subparsers.add_parser("add-product", help="Add a catalogue product")
    product_parser.add_argument("name")
    product_parser.add_argument("price")
    product_parser.add_argument("--store-id", default=None)
    product_parser.add_argument("--description", default=None)
    product_parser.add_argument("--image", action="append", help="Image URL; the first one is the principal image")
    product_parser.add_argument("--status", choices=["active", "inactive", "draft"], default="active")

    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_json)

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "add-product":
        add_product(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
