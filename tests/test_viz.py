"""
Tests for figures, palettes and exploratory plots (Agg backend).
"""

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from exprlab.analysis import cluster_samples, principal_components
from exprlab.viz import (
    PALETTES,
    Figure,
    Palette,
    configure_style,
    plot_dendrogram,
    plot_feature_by_group,
    plot_pca,
    plot_sample_boxplots,
    plot_sample_densities,
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


class TestPalette:
    """Group color assignment."""

    def test_two_groups(self):
        palette = Palette()
        colors = palette.for_groups([0, 1])
        assert colors == {0: palette.control, 1: palette.case}

    def test_float_group_labels(self):
        palette = Palette()
        assert palette.for_groups([0.0, 1.0])[1.0] == palette.case

    def test_sex(self):
        palette = Palette()
        assert palette.for_groups(['F', 'M']) == {'F': palette.female, 'M': palette.male}

    def test_batches_get_distinct_colors(self):
        colors = Palette().for_groups(['2005-06-10', '2005-06-11', '2005-06-12'])
        assert len(set(colors.values())) == 3

    def test_missing_level(self):
        palette = Palette()
        missing = np.nan
        colors = palette.for_groups(['M', missing])
        assert colors[missing] == palette.missing
        assert colors['M'] == palette.male

    def test_mixed_known_and_unknown_uses_fallback(self):
        palette = Palette()
        colors = palette.for_groups(['M', 'unknown'])
        assert colors['M'] != palette.male
        assert len(set(colors.values())) == 2


class TestConfigureStyle:
    """matplotlib/seaborn configuration."""

    def test_returns_palette(self):
        assert configure_style("paper") is PALETTES["default"]
        assert configure_style("notebook", "colorblind") is PALETTES["colorblind"]

    def test_palette_instance(self):
        custom = Palette(control="#000000")
        assert configure_style("presentation", custom) is custom

    def test_font_scale(self):
        configure_style("paper", font_scale=2.0)
        assert plt.rcParams["font.size"] == 20.0

    def test_unknown_palette(self):
        with pytest.raises(KeyError):
            configure_style("paper", "neon")

    def test_unknown_style(self):
        with pytest.raises(ValueError):
            configure_style("poster")


class TestFigure:
    """Figure wrapper save/close."""

    def test_save_png(self, tmp_path):
        fig, ax = plt.subplots()
        ax.plot([0, 1], [0, 1])
        figure = Figure(fig=fig, title="Line")
        path = figure.save(tmp_path / "sub" / "line.png", dpi=50)
        assert path.exists()
        assert path.stat().st_size > 0
        assert "created_at" in figure.metadata

    def test_save_html(self, tmp_path):
        fig, _ = plt.subplots()
        path = Figure(fig=fig, title="Empty").save(tmp_path / "empty.html", dpi=50)
        assert "data:image/png;base64," in path.read_text()

    def test_unknown_extension_is_png(self, tmp_path):
        fig, _ = plt.subplots()
        path = Figure(fig=fig, title="x").save(tmp_path / "x.img", dpi=50)
        assert path.read_bytes()[:4] == b'\x89PNG'

    def test_close(self):
        fig, _ = plt.subplots()
        Figure(fig=fig, title="x").close()
        assert not plt.fignum_exists(fig.number)


class TestPlots:
    """Exploratory plots return figures with the expected content."""

    def test_boxplots(self, small_dataset, tmp_path):
        figure = plot_sample_boxplots(small_dataset, color_by='group')
        ax = figure.axes[0]
        assert len(ax.patches) >= small_dataset.n_samples
        assert ax.get_legend() is not None
        figure.save(tmp_path / "box.png", dpi=50)

    def test_boxplots_ordered_by_covariate(self, small_dataset):
        figure = plot_sample_boxplots(small_dataset, color_by='group', show_labels=True)
        labels = [t.get_text() for t in figure.axes[0].get_xticklabels()]
        groups = small_dataset.covariate('group')
        assert [groups[label] for label in labels] == sorted(groups)

    def test_boxplots_without_covariate(self, small_dataset):
        figure = plot_sample_boxplots(small_dataset)
        assert figure.axes[0].get_legend() is None

    def test_densities(self, small_dataset):
        figure = plot_sample_densities(small_dataset, color_by='date')
        assert len(figure.axes[0].lines) == small_dataset.n_samples

    def test_densities_skip_constant_samples(self):
        from exprlab.core.dataset import SynchronizedDataset
        values = np.column_stack([np.linspace(0, 1, 20), np.ones(20)])
        ds = SynchronizedDataset(values, sample_ids=['varied', 'flat'])
        figure = plot_sample_densities(ds)
        assert len(figure.axes[0].lines) == 1
        assert figure.description.startswith("1 of 2")

    def test_pca(self, small_dataset):
        result = principal_components(small_dataset, n_components=3)
        figure = plot_pca(result, small_dataset, color_by='date', components=(1, 3))
        ax = figure.axes[0]
        assert ax.get_xlabel().startswith("PC1")
        assert ax.get_ylabel().startswith("PC3")
        assert figure.metadata["components"] == (1, 3)

    def test_pca_continuous_covariate(self, medium_dataset):
        ages = pd.DataFrame({'age': np.arange(medium_dataset.n_samples) + 20.0},
                            index=medium_dataset.sample_ids)
        ds = medium_dataset.with_covariates(ages)
        figure = plot_pca(principal_components(ds), ds, color_by='age')
        assert len(figure.fig.axes) == 2  # scatter + colorbar

    def test_pca_component_out_of_range(self, small_dataset):
        result = principal_components(small_dataset)
        with pytest.raises(ValueError, match="out of range"):
            plot_pca(result, small_dataset, components=(1, 3))

    def test_pca_color_requires_dataset(self, small_dataset):
        result = principal_components(small_dataset)
        with pytest.raises(ValueError, match="requires the dataset"):
            plot_pca(result, color_by='group')

    def test_pca_sample_mismatch(self, small_dataset):
        result = principal_components(small_dataset)
        with pytest.raises(ValueError, match="differ"):
            plot_pca(result, small_dataset.select_samples(slice(0, 5)), color_by='group')

    def test_dendrogram(self, small_dataset):
        result = cluster_samples(small_dataset)
        figure = plot_dendrogram(result, small_dataset, color_by='sex')
        labels = {t.get_text() for t in figure.axes[0].get_xticklabels()}
        assert labels == set(small_dataset.sample_ids)
        assert "average linkage" in figure.description

    def test_feature_by_group(self, small_dataset):
        feature = small_dataset.feature_ids[0]
        figure = plot_feature_by_group(small_dataset, feature, 'group')
        ax = figure.axes[0]
        assert ax.get_title() == feature
        assert [t.get_text() for t in ax.get_xticklabels()] == ["0\n(n=6)", "1\n(n=6)"]

    def test_feature_by_group_unknown_feature(self, small_dataset):
        with pytest.raises(LookupError):
            plot_feature_by_group(small_dataset, 'no_such_probe', 'group')
