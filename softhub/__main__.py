# -*- coding: utf-8 -*-
"""
SoftHub CLI - Sync and query the local catalog cache.

Usage::

    python -m softhub sync
    python -m softhub sync --clear
    python -m softhub search editor
    python -m softhub collection Graphics --limit 20 --offset 40

Author
------
SoftHub Contributors

License
-------
MIT License
Copyright (c) 2026 SoftHub Contributors
See LICENSE file for full text.

Created
-------
2026-10-18

Modified
--------
2026-10-18
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from softhub.catalog.exceptions import CatalogError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _print_progress(event) -> None:
    print(f"[{event.stage.value}] {event.progress}/{event.total} {event.message}")
    if event.details:
        print(f"    {event.details}", file=sys.stderr)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="softhub",
        description="SoftHub - Sync and browse the local software catalog cache.",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the cache database (default: resolved location).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a SoftHub JSON config file.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=_LOG_LEVELS,
        default=None,
        help="Logging level (default: from config, INFO).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Refresh the cache from the remote catalog.")
    sync.add_argument(
        "--clear",
        action="store_true",
        help="Clear the cache and rebuild it from the full catalog.",
    )

    search = commands.add_parser("search", help="Search cached apps.")
    search.add_argument("query")

    show = commands.add_parser("show", help="Show one cached app.")
    show.add_argument("app_id")

    commands.add_parser("categories", help="List cached categories.")

    collection = commands.add_parser("collection", help="List a collection's apps.")
    collection.add_argument("name", help="Category id or curated collection name.")
    collection.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Page size (default: collection_preview_limit from config).",
    )
    collection.add_argument("--offset", type=int, default=0)

    commands.add_parser("homepage", help="Show the curated homepage collections.")
    commands.add_parser("status", help="Report cache readiness.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    from softhub.core.config import load_config
    config = load_config(args.config)

    level = args.log_level or str(config.log_level).upper()
    logging.basicConfig(
        level=level if level in _LOG_LEVELS else "INFO",
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if level not in _LOG_LEVELS:
        logging.getLogger(__name__).warning(
            "Unknown log_level %r in config, using INFO", config.log_level
        )

    from softhub.catalog.client import CatalogClient
    from softhub.catalog.database import CatalogStore
    from softhub.catalog.models import Projection

    try:
        store = CatalogStore(db_path=args.db, config=config)
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        if args.command == "sync":
            from softhub.catalog.sync import CatalogSynchronizer
            client = CatalogClient.from_config(config)
            sync = CatalogSynchronizer(
                store, client, config=config, reporter=_print_progress
            )
            try:
                job = sync.run(clear_cache=args.clear)
                sync.wait()
            finally:
                sync.shutdown()
                client.close()
            if job is None:
                return 1
            print(f"Cache holds {store.count_apps()} apps")

        elif args.command == "search":
            results = store.search(args.query, limit=config.search_limit)
            _print_json([vars(r) for r in results])

        elif args.command == "show":
            app = store.get_app(args.app_id, Projection.FULL)
            if app is None:
                print(f"Error: app not cached: {args.app_id}", file=sys.stderr)
                return 1
            _print_json(app.to_dict())

        elif args.command == "categories":
            _print_json([vars(c) for c in store.get_categories()])

        elif args.command == "collection":
            limit = args.limit
            if limit is None:
                limit = config.collection_preview_limit
            apps, total = store.get_collection_page(args.name, limit, args.offset)
            _print_json({
                'total': total,
                'apps': [app.to_dict() for app in apps],
            })

        elif args.command == "homepage":
            home = store.get_homepage(limit=config.homepage_limit)
            _print_json({
                'popular': [a.to_dict() for a in home.popular],
                'trending': [a.to_dict() for a in home.trending],
                'recently_updated': [a.to_dict() for a in home.recently_updated],
            })

        elif args.command == "status":
            _print_json({
                'path': str(store.path),
                'ready': store.is_ready(),
                'apps': store.count_apps(),
            })
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        store.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
