"""
Core visualization primitive: the Figure wrapper.

Every plotting function returns a Figure rather than a bare matplotlib
figure, so callers (CLI, notebooks) save, embed and close them the same way.
"""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

import matplotlib.figure
import matplotlib.pyplot as plt

OutputFormat = Literal["png", "pdf", "svg", "html"]

__all__ = ['Figure']


@dataclass
class Figure:
    """
    Wrapper around a matplotlib figure with a title and description.

    Attributes
    ----------
    fig : matplotlib.figure.Figure
        The underlying figure object
    title : str
        Human-readable title for the figure
    description : str
        What the figure shows (sample counts, parameters)
    metadata : dict
        Additional metadata (creation time, parameters used, etc.)

    Examples
    --------
    >>> figure = plot_sample_boxplots(ds, color_by="group")
    >>> figure.save("boxplots.pdf")
    >>> figure.close()
    """
    fig: matplotlib.figure.Figure
    title: str
    description: str = ""
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if "created_at" not in self.metadata:
            self.metadata["created_at"] = datetime.now().isoformat()

    @property
    def axes(self):
        return self.fig.axes

    def save(
        self,
        path: Path | str,
        format: Optional[OutputFormat] = None,
        dpi: int = 300,
        **kwargs
    ) -> Path:
        """
        Save figure to file.

        Parameters
        ----------
        path : Path or str
            Output file path. Format inferred from extension if not specified.
        format : str, optional
            Output format; unknown extensions fall back to png.
        dpi : int, default 300
            DPI for raster formats. Ignored for vector formats.

        Returns
        -------
        Path
            The path where the figure was saved.
        """
        path = Path(path)

        if format is None:
            format = path.suffix.lstrip(".").lower()
            if format not in ("png", "pdf", "svg", "html"):
                format = "png"

        path.parent.mkdir(parents=True, exist_ok=True)

        save_kwargs = {
            "dpi": dpi,
            "bbox_inches": "tight",
            "facecolor": "white",
            **kwargs
        }

        if format == "html":
            img_b64 = self.to_base64(dpi=dpi)
            html = f"""<!DOCTYPE html>
<html><head><title>{self.title}</title></head>
<body style="margin:0;display:flex;justify-content:center;align-items:center;min-height:100vh;background:#f5f5f5;">
<img src="data:image/png;base64,{img_b64}" alt="{self.title}">
</body></html>"""
            path.write_text(html)
        else:
            self.fig.savefig(path, format=format, **save_kwargs)

        return path

    def to_base64(self, format: str = "png", dpi: int = 150) -> str:
        """Base64-encoded image data, for embedding in HTML."""
        buf = io.BytesIO()
        self.fig.savefig(buf, format=format, dpi=dpi, bbox_inches="tight")
        return base64.b64encode(buf.getvalue()).decode()

    def show(self):
        plt.show()

    def close(self):
        """Close the figure to free memory."""
        plt.close(self.fig)
