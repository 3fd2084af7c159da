"""
Visualization for exploratory expression analysis.

Plot functions return a ``Figure`` wrapper; ``configure_style`` and
``Palette`` control appearance.

Examples:
    >>> from exprlab.viz import plot_pca
    >>> from exprlab.analysis import principal_components
    >>> fig = plot_pca(principal_components(ds), ds, color_by="date")
    >>> fig.save("pca.pdf")
"""

from exprlab.viz.core import Figure
from exprlab.viz.plots import (
    plot_dendrogram,
    plot_feature_by_group,
    plot_pca,
    plot_sample_boxplots,
    plot_sample_densities,
)
from exprlab.viz.styles import PALETTES, Palette, configure_style

__all__ = [
    'Figure',
    'Palette',
    'PALETTES',
    'configure_style',
    'plot_sample_boxplots',
    'plot_sample_densities',
    'plot_pca',
    'plot_dendrogram',
    'plot_feature_by_group',
]
