"""
Load a catalog from the command line and report what was loaded.

    python -m cosmocatalog solarsys.json --tle celestrak visual.txt
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from .catalog import UniverseCatalog
from .config import make_loader_config
from .entity import Entity
from .errors import CatalogError
from .loader import UniverseLoader
from .logging_config import setup_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cosmocatalog",
        description="Load a JSON universe catalog and list the bodies it defines.",
    )
    parser.add_argument(
        "catalog",
        type=Path,
        help="Catalog file to load, relative to the data path.",
    )
    parser.add_argument(
        "--data-path",
        type=Path,
        default=None,
        help="Directory searched for the catalog and its data files (default: current directory).",
    )
    parser.add_argument(
        "--root",
        default="SSB",
        help="Name of the entity fixed at the origin, available as an arc center (default: SSB).",
    )
    parser.add_argument(
        "--tle",
        nargs=2,
        action="append",
        metavar=("SOURCE", "FILE"),
        default=[],
        help="Apply a TLE set file as updates from SOURCE after loading; may be repeated.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug messages.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    loader = UniverseLoader(make_loader_config(args.data_path))
    catalog = UniverseCatalog()
    catalog.add_entity(Entity(args.root))

    try:
        names = loader.load_catalog_file(args.catalog, catalog)
        for source, tle_file in args.tle:
            with open(tle_file, 'r') as f:
                loader.process_tle_set(source, f)
        updated = loader.process_updates()
    except (CatalogError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    for name in names:
        print(name)
    if args.tle:
        print(f"Updated {updated} TLE trajectories")

    requests = sorted(loader.resource_requests())
    if requests:
        print("Pending resource requests: " + ", ".join(requests))
    return 0


if __name__ == "__main__":
    sys.exit(main())
