"""
Summary subcommand: per-sample and per-feature descriptive statistics.

Usage:
    exprlab summary --expression expr.txt --covariates samples.csv \\
        --id-column filename --output results/summary --plots --color-by group
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from exprlab.cli._inputs import add_input_arguments, load_input_dataset

logger = logging.getLogger(__name__)


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the summary subcommand."""
    parser = subparsers.add_parser(
        "summary",
        help="Per-sample and per-feature summary statistics",
        description="Write sample and feature summary tables, and optionally "
                    "per-sample boxplots and density plots.",
    )
    add_input_arguments(parser)
    parser.add_argument("--output", "-o", type=Path, required=True,
                        help="Output directory")
    parser.add_argument("--group-by", default=None,
                        help="Also write per-feature means for each level of this covariate")
    parser.add_argument("--plots", action="store_true", default=False,
                        help="Write boxplot and density figures")
    parser.add_argument("--color-by", default=None,
                        help="Covariate used to color the figures")
    parser.add_argument("--figure-format", choices=["png", "pdf", "svg"], default="png",
                        help="Figure format (default: png)")
    parser.set_defaults(func=run_summary)


def run_summary(args: argparse.Namespace) -> int:
    """Execute the summary command."""
    from exprlab.analysis.summary import feature_summary, group_means, sample_summary

    try:
        dataset = load_input_dataset(args)
        args.output.mkdir(parents=True, exist_ok=True)

        samples = sample_summary(dataset)
        samples.to_csv(args.output / "sample_summary.csv")
        features = feature_summary(dataset)
        features.to_csv(args.output / "feature_summary.csv")
        written = ["sample_summary.csv", "feature_summary.csv"]

        if args.group_by is not None:
            group_means(dataset, args.group_by).to_csv(args.output / "group_means.csv")
            written.append("group_means.csv")

        if args.plots:
            import matplotlib
            matplotlib.use("Agg")
            from exprlab.viz.plots import plot_sample_boxplots, plot_sample_densities

            for name, plot in (("boxplots", plot_sample_boxplots), ("densities", plot_sample_densities)):
                figure = plot(dataset, color_by=args.color_by)
                path = figure.save(args.output / f"sample_{name}.{args.figure_format}")
                figure.close()
                written.append(path.name)

    except (FileNotFoundError, ValueError, LookupError) as e:
        logger.error(f"summary failed: {e}")
        return 1

    print(dataset)
    print(f"\nWrote {', '.join(written)} to {args.output}")
    return 0
