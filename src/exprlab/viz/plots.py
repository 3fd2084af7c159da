"""
Exploratory plots for a SynchronizedDataset.

Questions these answer, in the order an analyst usually asks them:

- Are the arrays comparable? (plot_sample_boxplots, plot_sample_densities)
- What drives sample-to-sample variation: group, batch or sex?
  (plot_pca, plot_dendrogram, colored by a covariate)
- Does one feature differ between groups? (plot_feature_by_group)

Every function colors samples by a covariate looked up through the dataset,
so colors always line up with the expression columns being drawn.
"""

from __future__ import annotations

import logging
from typing import Hashable, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.patches import Patch
from scipy.cluster import hierarchy

from exprlab.analysis.clustering import ClusteringResult
from exprlab.analysis.pca import PCAResult
from exprlab.core.dataset import SynchronizedDataset
from exprlab.viz.core import Figure
from exprlab.viz.styles import Palette, configure_style
from exprlab.viz.styles import _label

logger = logging.getLogger(__name__)

__all__ = [
    'plot_sample_boxplots',
    'plot_sample_densities',
    'plot_pca',
    'plot_dendrogram',
    'plot_feature_by_group',
]

# Numeric covariates with more distinct values than this are drawn with a colormap
MAX_CATEGORICAL_LEVELS = 12


def _level_colors(
    dataset: Optional[SynchronizedDataset],
    color_by: Optional[Hashable],
    palette: Palette,
) -> tuple[list[str], dict[str, str]]:
    """
    Per-sample color and the legend mapping (level label -> color).

    Without a covariate every sample gets the neutral color and the legend
    is empty.
    """
    if dataset is None or color_by is None:
        n = dataset.n_samples if dataset is not None else 0
        return [palette.neutral] * n, {}

    values = dataset.covariate(color_by)
    levels = list(pd.unique(values))
    try:
        levels.sort(key=lambda v: (pd.isna(v), v))
    except TypeError:
        pass
    by_level = palette.for_groups(levels)
    legend = {_legend_label(level): by_level[level] for level in levels}
    colors = [legend[_legend_label(v)] for v in values]
    return colors, legend


def _legend_label(value) -> str:
    return "NA" if pd.isna(value) else _label(value)


def _is_continuous(values: pd.Series) -> bool:
    return (
        pd.api.types.is_numeric_dtype(values)
        and values.nunique(dropna=True) > MAX_CATEGORICAL_LEVELS
    )


def _add_legend(ax, legend: dict[str, str], title: Optional[Hashable]) -> None:
    if not legend:
        return
    handles = [Patch(facecolor=color, label=label) for label, color in legend.items()]
    ax.legend(handles=handles, title=str(title), loc='best', fontsize=8)


def _sample_order(dataset: SynchronizedDataset, color_by: Optional[Hashable]) -> list[int]:
    """Sample positions grouped by covariate level (stable within a level)."""
    if color_by is None:
        return list(range(dataset.n_samples))
    values = dataset.covariate(color_by).reset_index(drop=True)
    try:
        return list(values.sort_values(kind='stable', na_position='last').index)
    except TypeError:
        return list(range(dataset.n_samples))


def plot_sample_boxplots(
    dataset: SynchronizedDataset,
    color_by: Optional[Hashable] = None,
    palette: str | Palette = "default",
    show_labels: Optional[bool] = None,
) -> Figure:
    """
    One boxplot per sample, grouped and colored by a covariate.

    Arrays processed on a bad day show up as shifted or compressed boxes.

    Args:
        dataset: Input dataset
        color_by: Covariate used to color and order the samples
        palette: Palette name or instance
        show_labels: Draw sample ids on the x axis (default: only when
            there are at most 50 samples)
    """
    palette = configure_style("notebook", palette)
    order = _sample_order(dataset, color_by)
    colors, legend = _level_colors(dataset, color_by, palette)

    values = dataset.expression
    data = [values[:, j][~np.isnan(values[:, j])] for j in order]

    width = min(max(6.0, 0.25 * dataset.n_samples), 24.0)
    fig, ax = plt.subplots(figsize=(width, 4.5))
    boxes = ax.boxplot(data, patch_artist=True, showfliers=False, widths=0.7)
    for patch, j in zip(boxes['boxes'], order):
        patch.set_facecolor(colors[j] if colors else palette.neutral)
        patch.set_alpha(0.8)
    for median in boxes['medians']:
        median.set_color('black')

    if show_labels is None:
        show_labels = dataset.n_samples <= 50
    ax.set_xticks(range(1, len(order) + 1))
    if show_labels:
        ax.set_xticklabels([str(dataset.sample_ids[j]) for j in order], rotation=90, fontsize=7)
    else:
        ax.set_xticklabels([])

    ax.set_xlabel("Sample")
    ax.set_ylabel("Expression")
    ax.set_title(f"Per-sample distributions (n={dataset.n_samples})")
    _add_legend(ax, legend, color_by)
    fig.tight_layout()

    return Figure(
        fig=fig,
        title="Sample Boxplots",
        description=f"{dataset.n_samples} samples x {dataset.n_features} features"
                    + (f", colored by {color_by}" if color_by is not None else ""),
    )


def plot_sample_densities(
    dataset: SynchronizedDataset,
    color_by: Optional[Hashable] = None,
    palette: str | Palette = "default",
) -> Figure:
    """
    Overlaid kernel density of each sample's expression values.

    Samples with fewer than two distinct finite values are skipped.
    """
    palette = configure_style("notebook", palette)
    colors, legend = _level_colors(dataset, color_by, palette)

    fig, ax = plt.subplots(figsize=(7, 4.5))
    values = dataset.expression
    n_skipped = 0
    for j in range(dataset.n_samples):
        column = values[:, j][~np.isnan(values[:, j])]
        if column.size < 2 or np.ptp(column) == 0:
            n_skipped += 1
            continue
        sns.kdeplot(x=column, ax=ax, color=colors[j], linewidth=0.8, alpha=0.7)

    if n_skipped:
        logger.info(f"Skipped {n_skipped} samples without spread in the density plot")

    ax.set_xlabel("Expression")
    ax.set_ylabel("Density")
    ax.set_title(f"Per-sample densities (n={dataset.n_samples})")
    _add_legend(ax, legend, color_by)
    fig.tight_layout()

    return Figure(
        fig=fig,
        title="Sample Densities",
        description=f"{dataset.n_samples - n_skipped} of {dataset.n_samples} samples drawn",
    )


def plot_pca(
    result: PCAResult,
    dataset: Optional[SynchronizedDataset] = None,
    color_by: Optional[Hashable] = None,
    components: tuple[int, int] = (1, 2),
    palette: str | Palette = "default",
    label_points: bool = False,
) -> Figure:
    """
    Scatter of two principal components, colored by a covariate.

    Args:
        result: Output of principal_components
        dataset: Dataset the PCA was computed on (needed for color_by)
        color_by: Covariate to color points by; numeric covariates with
            many distinct values get a colorbar
        components: 1-based component numbers for the x and y axes
        label_points: Annotate each point with its sample id

    Raises:
        ValueError: Component out of range, or dataset samples differ from
            the PCA's samples
    """
    n_pcs = result.scores.shape[1]
    for c in components:
        if not 1 <= c <= n_pcs:
            raise ValueError(f"Component {c} out of range; result has {n_pcs} components")
    if color_by is not None:
        if dataset is None:
            raise ValueError("color_by requires the dataset the PCA was computed on")
        if not dataset.sample_ids.equals(result.scores.index):
            raise ValueError("Dataset samples differ from the PCA's samples")

    palette = configure_style("notebook", palette)
    cx, cy = components
    x = result.scores.iloc[:, cx - 1].to_numpy()
    y = result.scores.iloc[:, cy - 1].to_numpy()

    fig, ax = plt.subplots(figsize=(6, 5))
    if color_by is not None and _is_continuous(dataset.covariate(color_by)):
        points = ax.scatter(
            x, y, c=dataset.covariate(color_by).to_numpy(dtype=float),
            cmap=palette.sequential, s=40, edgecolor='white', linewidth=0.5,
        )
        fig.colorbar(points, ax=ax, label=str(color_by))
    else:
        colors, legend = _level_colors(dataset, color_by, palette)
        if not colors:
            colors = [palette.neutral] * len(x)
        ax.scatter(x, y, c=colors, s=40, edgecolor='white', linewidth=0.5)
        _add_legend(ax, legend, color_by)

    if label_points:
        for sample_id, xi, yi in zip(result.scores.index, x, y):
            ax.annotate(str(sample_id), (xi, yi), fontsize=7, xytext=(3, 3),
                        textcoords='offset points')

    ax.set_xlabel(result.axis_label(cx))
    ax.set_ylabel(result.axis_label(cy))
    ax.set_title(f"PCA ({result.n_features_used:,} features)")
    fig.tight_layout()

    return Figure(
        fig=fig,
        title="PCA",
        description=f"PC{cx} vs PC{cy} of {len(x)} samples",
        metadata={"components": components, "color_by": color_by},
    )


def plot_dendrogram(
    result: ClusteringResult,
    dataset: Optional[SynchronizedDataset] = None,
    color_by: Optional[Hashable] = None,
    palette: str | Palette = "default",
) -> Figure:
    """
    Dendrogram of a sample clustering; leaf labels colored by a covariate.

    Raises:
        ValueError: color_by without a dataset, or dataset samples differ
            from the clustering's samples
    """
    if color_by is not None:
        if dataset is None:
            raise ValueError("color_by requires the dataset the clustering was computed on")
        if not dataset.sample_ids.equals(result.sample_ids):
            raise ValueError("Dataset samples differ from the clustering's samples")

    palette = configure_style("notebook", palette)
    n = len(result.sample_ids)
    width = min(max(6.0, 0.25 * n), 24.0)
    fig, ax = plt.subplots(figsize=(width, 4.5))

    tree = hierarchy.dendrogram(
        result.linkage,
        labels=[str(s) for s in result.sample_ids],
        ax=ax,
        color_threshold=0,
        above_threshold_color=palette.neutral,
        leaf_rotation=90,
        leaf_font_size=7,
    )

    colors, legend = _level_colors(dataset, color_by, palette)
    if legend:
        for tick, leaf in zip(ax.get_xticklabels(), tree['leaves']):
            tick.set_color(colors[leaf])
        _add_legend(ax, legend, color_by)

    ax.set_ylabel(f"{result.metric} distance")
    ax.set_title(f"Hierarchical clustering ({result.method} linkage)")
    fig.tight_layout()

    return Figure(
        fig=fig,
        title="Sample Dendrogram",
        description=f"{n} samples, {result.method} linkage, {result.metric} distance",
    )


def plot_feature_by_group(
    dataset: SynchronizedDataset,
    feature: Hashable,
    covariate: Hashable,
    palette: str | Palette = "default",
) -> Figure:
    """
    One feature's expression across the levels of a covariate.

    Boxplot per level with the individual samples overlaid. Samples with a
    missing covariate value are shown as their own "NA" level.

    Args:
        feature: Feature identifier (or position, for unlabeled datasets)
        covariate: Grouping covariate

    Raises:
        LookupError: Unknown feature
        KeyError: Unknown covariate
    """
    palette = configure_style("notebook", palette)
    row = dataset.select_features([feature])
    _, legend = _level_colors(dataset, covariate, palette)

    frame = pd.DataFrame({
        'group': [_legend_label(v) for v in dataset.covariate(covariate)],
        'expression': row.expression[0],
    })
    order = list(legend)

    fig, ax = plt.subplots(figsize=(max(3.5, 1.2 * len(order) + 2), 4.5))
    sns.boxplot(
        data=frame, x='group', y='expression', hue='group', order=order,
        palette=legend, ax=ax, showfliers=False, legend=False,
    )
    sns.stripplot(
        data=frame, x='group', y='expression', order=order,
        color='black', size=3, alpha=0.6, ax=ax,
    )

    label = row.feature_ids[0] if row.feature_ids is not None else feature
    counts = frame['group'].value_counts()
    ax.set_xticks(range(len(order)))
    ax.set_xticklabels([f"{level}\n(n={counts.get(level, 0)})" for level in order])
    ax.set_xlabel(str(covariate))
    ax.set_ylabel("Expression")
    ax.set_title(str(label))
    fig.tight_layout()

    return Figure(
        fig=fig,
        title=f"{label} by {covariate}",
        description=f"{len(frame)} samples in {len(order)} groups",
    )
