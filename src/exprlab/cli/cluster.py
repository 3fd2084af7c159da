"""
Cluster subcommand: hierarchical clustering of samples.

Usage:
    exprlab cluster --expression expr.txt --covariates samples.csv \\
        --id-column filename --n-clusters 2 --crosstab group --output results/cluster
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from exprlab.analysis.clustering import METHODS
from exprlab.cli._inputs import add_input_arguments, load_input_dataset
from exprlab.cli._validators import _positive_float, _positive_int

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the cluster subcommand."""
    parser = subparsers.add_parser(
        "cluster",
        help="Hierarchical clustering of samples",
        description="Write a dendrogram and, when the tree is cut, the cluster "
                    "assignment of each sample.",
    )
    add_input_arguments(parser)
    parser.add_argument("--output", "-o", type=Path, required=True,
                        help="Output directory")
    parser.add_argument("--method", choices=list(METHODS), default="average",
                        help="Linkage method (default: average)")
    parser.add_argument("--metric", default="euclidean",
                        help="Distance metric, e.g. euclidean, correlation, cityblock "
                             "(default: euclidean)")
    cut = parser.add_mutually_exclusive_group()
    cut.add_argument("--n-clusters", type=_positive_int, default=None,
                     help="Cut the tree into this many clusters")
    cut.add_argument("--height", type=_positive_float, default=None,
                     help="Cut the tree at this distance")
    parser.add_argument("--crosstab", default=None,
                        help="Print cluster counts against this covariate (requires a cut)")
    parser.add_argument("--color-by", default=None,
                        help="Covariate used to color the dendrogram leaves")
    parser.add_argument("--figure-format", choices=["png", "pdf", "svg"], default="png",
                        help="Figure format (default: png)")
    parser.set_defaults(func=run_cluster)


def run_cluster(args: argparse.Namespace) -> int:
    """Execute the cluster command."""
    import matplotlib
    matplotlib.use("Agg")
    from exprlab.analysis.clustering import cluster_samples, cross_tabulate
    from exprlab.viz.plots import plot_dendrogram

    if args.crosstab is not None and args.n_clusters is None and args.height is None:
        logger.error("--crosstab requires --n-clusters or --height")
        return 1

    try:
        dataset = load_input_dataset(args)
        result = cluster_samples(
            dataset,
            method=args.method,
            metric=args.metric,
            n_clusters=args.n_clusters,
            height=args.height,
        )

        args.output.mkdir(parents=True, exist_ok=True)
        written = []
        if result.assignments is not None:
            result.assignments.to_csv(args.output / "clusters.csv")
            written.append("clusters.csv")

        figure = plot_dendrogram(result, dataset, color_by=args.color_by)
        path = figure.save(args.output / f"dendrogram.{args.figure_format}")
        figure.close()
        written.append(path.name)

        table = None
        if args.crosstab is not None:
            table = cross_tabulate(result, dataset, args.crosstab)

    except (FileNotFoundError, ValueError, LookupError) as e:
        logger.error(f"cluster failed: {e}")
        return 1

    print(f"Clustered {dataset.n_samples} samples ({args.method} linkage, {args.metric} distance)")
    if result.assignments is not None:
        print(f"  {result.assignments.nunique()} clusters")
    if table is not None:
        print()
        print(table.to_string())
    print(f"\nWrote {', '.join(written)} to {args.output}")
    return 0
