"""
Consistent visual styles for expression exploratory plots.

Domain Conventions
------------------
- Two-group comparisons: control = Blue (#2563eb), case = Orange (#f97316)
- Male = Teal (#0d9488), Female = Violet (#7c3aed) [gender-neutral colors]
- Batches and other covariates: Set2 categorical palette
- Continuous covariates: viridis
- All colorblind-safe palettes
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterable, Literal

import matplotlib.pyplot as plt
import seaborn as sns

__all__ = ['Palette', 'PALETTES', 'configure_style']


@dataclass(frozen=True)
class Palette:
    """
    Color palette for expression plots.

    Attributes
    ----------
    control : str
        Color for the reference group (label 0, "control", "CTRL")
    case : str
        Color for the comparison group (label 1, "case", "CASE")
    male : str
        Color for male samples
    female : str
        Color for female samples
    missing : str
        Color for samples whose covariate value is missing
    neutral : str
        Color when no covariate is used
    categorical : str
        Seaborn palette name for other categorical covariates
    diverging : str
        Colormap name for centered data
    sequential : str
        Colormap name for continuous covariates
    """
    control: str = "#2563eb"     # Blue-600
    case: str = "#f97316"        # Orange-500
    male: str = "#0d9488"        # Teal-600
    female: str = "#7c3aed"      # Violet-600
    missing: str = "#9ca3af"     # Gray-400
    neutral: str = "#6b7280"     # Gray-500
    categorical: str = "Set2"
    diverging: str = "RdBu_r"
    sequential: str = "viridis"

    @property
    def group(self) -> dict[str, str]:
        """Color mapping for two-group labels."""
        return {
            "0": self.control, "1": self.case,
            "control": self.control, "case": self.case,
            "CTRL": self.control, "CASE": self.case,
        }

    @property
    def sex(self) -> dict[str, str]:
        """Color mapping for sex values."""
        return {"M": self.male, "F": self.female, "male": self.male, "female": self.female}

    def for_groups(self, groups: Iterable[Hashable]) -> dict[Hashable, str]:
        """
        Color per group level.

        Known two-group and sex labels get their fixed colors; other levels
        (batch dates, tissues) draw from the categorical palette in order.
        Missing levels (None/NaN) get the missing color.
        """
        groups = list(groups)
        known = {**self.group, **self.sex}
        fallback = sns.color_palette(self.categorical, max(len(groups), 3)).as_hex()

        # Only use fixed colors when every level is a known label
        use_known = all(_label(g) in known for g in groups if not _is_missing(g))

        colors = {}
        fallback_idx = 0
        for group in groups:
            if _is_missing(group):
                colors[group] = self.missing
            elif use_known:
                colors[group] = known[_label(group)]
            else:
                colors[group] = fallback[fallback_idx % len(fallback)]
                fallback_idx += 1
        return colors


def _label(value: Hashable) -> str:
    # 1.0 read from a float column should match "1"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _is_missing(value: Hashable) -> bool:
    return value is None or (isinstance(value, float) and value != value)


PALETTES = {
    "default": Palette(),
    "colorblind": Palette(
        control="#0077bb",
        case="#ee7733",
        male="#009988",
        female="#aa3377",
        missing="#bbbbbb",
        neutral="#999999",
        categorical="colorblind",
    ),
    "print": Palette(
        control="#1a1a1a",
        case="#808080",
        male="#333333",
        female="#b3b3b3",
        missing="#e6e6e6",
        neutral="#666666",
        categorical="Greys",
        diverging="RdGy",
        sequential="Greys",
    ),
}


def configure_style(
    style: Literal["paper", "presentation", "notebook"] = "paper",
    palette: str | Palette = "default",
    font_scale: float = 1.0
) -> Palette:
    """
    Configure matplotlib and seaborn for a target medium.

    Parameters
    ----------
    style : {"paper", "presentation", "notebook"}
        - paper: high DPI, small fonts
        - presentation: large fonts, thick lines
        - notebook: moderate sizes
    palette : str or Palette
        Palette name (see PALETTES) or instance.
    font_scale : float
        Multiplier for all font sizes.

    Returns
    -------
    Palette
        The configured color palette.

    Raises
    ------
    KeyError
        Unknown palette name.
    ValueError
        Unknown style.
    """
    if isinstance(palette, str):
        if palette not in PALETTES:
            raise KeyError(f"Unknown palette '{palette}'. Available: {list(PALETTES)}")
        palette = PALETTES[palette]

    base_params = {
        "figure.facecolor": "white",
        "axes.facecolor": "white",
        "axes.edgecolor": "#333333",
        "axes.labelcolor": "#333333",
        "text.color": "#333333",
        "xtick.color": "#333333",
        "ytick.color": "#333333",
        "axes.spines.top": False,
        "axes.spines.right": False,
        "legend.frameon": False,
    }

    if style == "paper":
        sizes = (10, 11, 9)
        style_params = {"figure.dpi": 150, "savefig.dpi": 300, "lines.linewidth": 1.0}
        context = "paper"
    elif style == "presentation":
        sizes = (14, 18, 12)
        style_params = {"figure.dpi": 100, "savefig.dpi": 150, "lines.linewidth": 2.0}
        context = "talk"
    elif style == "notebook":
        sizes = (11, 12, 10)
        style_params = {"figure.dpi": 100, "savefig.dpi": 150, "lines.linewidth": 1.5}
        context = "notebook"
    else:
        raise ValueError(f"Unknown style '{style}'. Use paper, presentation or notebook")

    base, title, ticks = (s * font_scale for s in sizes)
    style_params.update({
        "font.size": base,
        "axes.titlesize": title,
        "axes.labelsize": base,
        "xtick.labelsize": ticks,
        "ytick.labelsize": ticks,
        "legend.fontsize": ticks,
    })

    sns.set_theme(style="whitegrid", context=context, font_scale=font_scale)
    plt.rcParams.update({**base_params, **style_params})

    return palette
