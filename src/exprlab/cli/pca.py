"""
PCA subcommand: project samples onto principal components.

Usage:
    exprlab pca --expression expr.txt --covariates samples.csv \\
        --id-column filename --log2 --color-by date --output results/pca
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from exprlab.cli._inputs import add_input_arguments, load_input_dataset
from exprlab.cli._validators import _components, _positive_int

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the pca subcommand."""
    parser = subparsers.add_parser(
        "pca",
        help="Principal component analysis of samples",
        description="Write PCA scores and loadings and a scatter plot of two "
                    "components colored by a covariate.",
    )
    add_input_arguments(parser)
    parser.add_argument("--output", "-o", type=Path, required=True,
                        help="Output directory")
    parser.add_argument("--n-components", type=_positive_int, default=2,
                        help="Number of components (default: 2)")
    parser.add_argument("--scale", action="store_true", default=False,
                        help="Standardize features before PCA")
    parser.add_argument("--color-by", default=None,
                        help="Covariate used to color the samples")
    parser.add_argument("--components", type=_components, default=(1, 2),
                        help="Components to plot, e.g. '1,2' (default) or '2,3'")
    parser.add_argument("--label-points", action="store_true", default=False,
                        help="Annotate points with sample ids")
    parser.add_argument("--figure-format", choices=["png", "pdf", "svg"], default="png",
                        help="Figure format (default: png)")
    parser.set_defaults(func=run_pca)


def run_pca(args: argparse.Namespace) -> int:
    """Execute the pca command."""
    import matplotlib
    matplotlib.use("Agg")
    from exprlab.analysis.pca import principal_components
    from exprlab.viz.plots import plot_pca

    try:
        dataset = load_input_dataset(args)
        n_components = max(args.n_components, *args.components)
        result = principal_components(dataset, n_components=n_components, scale=args.scale)

        args.output.mkdir(parents=True, exist_ok=True)
        scores = result.scores
        if args.color_by is not None:
            scores = scores.join(dataset.covariate_frame[[args.color_by]])
        scores.to_csv(args.output / "pca_scores.csv")
        result.loadings.to_csv(args.output / "pca_loadings.csv")

        figure = plot_pca(
            result, dataset,
            color_by=args.color_by,
            components=args.components,
            label_points=args.label_points,
        )
        figure.save(args.output / f"pca.{args.figure_format}")
        figure.close()

    except (FileNotFoundError, ValueError, LookupError) as e:
        logger.error(f"pca failed: {e}")
        return 1

    print(f"PCA of {dataset.n_samples} samples on {result.n_features_used:,} features")
    for i, ratio in enumerate(result.explained_variance_ratio, start=1):
        print(f"  PC{i}: {100 * ratio:.1f}% of variance")
    print(f"\nWrote pca_scores.csv, pca_loadings.csv, pca.{args.figure_format} to {args.output}")
    return 0
