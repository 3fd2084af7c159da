"""
exprlab CLI - exploratory analysis of expression data with sample covariates.

Commands:
    exprlab summary   - Per-sample and per-feature summary statistics
    exprlab pca       - Principal component analysis of samples
    exprlab cluster   - Hierarchical clustering of samples
    exprlab fetch     - Download and parse a GEO series
"""

import argparse
import logging
import sys
from typing import List, Optional

from exprlab import __version__


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for exprlab."""
    parser = argparse.ArgumentParser(
        prog="exprlab",
        description="Exploratory analysis of expression data with sample covariates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  summary   Per-sample and per-feature summary statistics
  pca       Principal component analysis of samples
  cluster   Hierarchical clustering of samples
  fetch     Download and parse a GEO series

Examples:
  exprlab summary -e expr.txt --covariates samples.csv --id-column filename -o results/summary
  exprlab pca -c inputs.yaml --log2 --color-by date -o results/pca
  exprlab cluster -c inputs.yaml --n-clusters 2 --crosstab group -o results/cluster
  exprlab fetch GSE5859 --destdir data/geo
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from exprlab.cli import cluster, fetch, pca, summary
    summary.register_parser(subparsers)
    pca.register_parser(subparsers)
    cluster.register_parser(subparsers)
    fetch.register_parser(subparsers)

    argv = list(sys.argv[1:] if args is None else args)
    parsed_args = parser.parse_args(argv)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Raw arguments, for telling explicit options from defaults when a config is merged
    parsed_args.cli_args = argv
    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
