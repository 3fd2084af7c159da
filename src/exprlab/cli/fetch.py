"""
Fetch subcommand: download a GEO series.

Usage:
    exprlab fetch GSE5859 --destdir data/geo --export data/GSE5859
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from exprlab.cli._validators import _positive_float

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the fetch subcommand."""
    parser = subparsers.add_parser(
        "fetch",
        help="Download and parse a GEO series",
        description="Download the series matrix file(s) of a GEO series and "
                    "report one line per platform dataset.",
    )
    parser.add_argument("accession", help="GEO series accession, e.g. GSE5859")
    parser.add_argument("--destdir", type=Path, default=None,
                        help="Download cache directory (default: a temporary directory)")
    parser.add_argument("--export", type=Path, default=None,
                        help="Write <platform>_expression.csv and <platform>_samples.csv here")
    parser.add_argument("--timeout", type=_positive_float, default=60.0,
                        help="Seconds per network request (default: 60)")
    parser.set_defaults(func=run_fetch)


def run_fetch(args: argparse.Namespace) -> int:
    """Execute the fetch command."""
    from exprlab.geo.fetch import GEOFetchError, get_geo

    try:
        datasets = get_geo(args.accession, destdir=args.destdir, timeout=args.timeout)
    except (GEOFetchError, ValueError) as e:
        logger.error(f"fetch failed: {e}")
        return 1

    for platform, dataset in datasets.items():
        title = dataset.metadata.title or ""
        print(f"{platform}\t{dataset.n_features} features\t{dataset.n_samples} samples\t{title}")

        if args.export is not None:
            args.export.mkdir(parents=True, exist_ok=True)
            dataset.to_frame().to_csv(args.export / f"{platform}_expression.csv")
            dataset.covariate_frame.to_csv(args.export / f"{platform}_samples.csv")

    return 0
