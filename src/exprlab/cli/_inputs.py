"""
Shared input arguments for the analysis subcommands.

Every analysis command reads the same two files (expression table and
sample sheet) with the same format options, optionally from a config file.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from exprlab.cli._validators import _delimiter, _non_negative_int
from exprlab.cli.config import load_config, merge_config_with_args
from exprlab.core.dataset import SynchronizedDataset
from exprlab.io.formats import PRESETS
from exprlab.io.loaders import load_dataset
from exprlab.transforms import LogTransform

logger = logging.getLogger(__name__)


def add_input_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the input options shared by summary, pca and cluster."""
    group = parser.add_argument_group("input")
    group.add_argument("--config", "-c", type=Path, default=None,
                       help="YAML/JSON config naming the inputs (CLI args override config values)")
    group.add_argument("--expression", "-e", type=Path, default=None,
                       help="Expression table (features x samples) or GEO series matrix")
    group.add_argument("--covariates", type=Path, default=None,
                       help="Sample sheet, one row per sample")
    group.add_argument("--id-column", default=None,
                       help="Sample sheet column matching the expression column headers "
                            "(default: first column)")
    group.add_argument("--format", "-f", choices=list(PRESETS.keys()) + ['auto'], default='auto',
                       help="Expression table format preset (default: auto-detect)")
    group.add_argument("--delimiter", type=_delimiter, default=None,
                       help="Expression table delimiter: a character, 'tab', 'comma', "
                            "'semicolon' or 'whitespace' (default: sniff)")
    group.add_argument("--skip-rows", type=_non_negative_int, default=None,
                       help="Preamble lines before the header row")
    group.add_argument("--n-rows", type=_non_negative_int, default=None,
                       help="Number of feature rows to read (default: all)")
    group.add_argument("--log2", action="store_true", default=False,
                       help="log2-transform expression values after loading")


def resolve_inputs(args: argparse.Namespace) -> argparse.Namespace:
    """
    Apply the config file (if any) to parsed arguments.

    Raises:
        FileNotFoundError, ValueError: Config file problems
        ValueError: No expression file from either source
    """
    if args.config:
        logger.info(f"Loading configuration from {args.config}")
        config = load_config(args.config)
        args = merge_config_with_args(config, args, getattr(args, 'cli_args', None))
    else:
        args.descriptions = {}
        args.metadata = {}

    if not args.expression:
        raise ValueError("--expression is required (via CLI or config file)")
    return args


def load_input_dataset(args: argparse.Namespace) -> SynchronizedDataset:
    """
    Resolve config, load the dataset and apply --log2.

    Raises:
        FileNotFoundError, ValueError, KeyError: Input problems
    """
    args = resolve_inputs(args)
    dataset = load_dataset(
        args.expression,
        args.covariates,
        id_column=args.id_column,
        format=None if args.format in (None, 'auto') else args.format,
        delimiter=args.delimiter,
        skip_rows=args.skip_rows,
        n_rows=args.n_rows,
        descriptions=args.descriptions or None,
        metadata=args.metadata or None,
    )
    if args.log2:
        dataset = LogTransform(base=2.0)(dataset)

    logger.info(f"Loaded {dataset!r}")
    return dataset
