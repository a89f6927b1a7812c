"""
Rendering of per-date choropleth frames.

Frames are drawn with the object-oriented matplotlib API on their own Figure
and Agg canvas, never through pyplot, so several dates can be rendered on
worker threads at once.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import matplotlib
import pandas as pd
from matplotlib import cm
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.collections import PolyCollection
from matplotlib.colors import Normalize
from matplotlib.figure import Figure

from .base import Renderer
from .config import frame_filename
from .exceptions import NoDataError
from .models import ColorDomain, Frame, SpatialCell

logger = logging.getLogger(__name__)

NEUTRAL_COLOR = "#d3d3d3"
EDGE_COLOR = "#c7c7c7"  # gray78
BOUNDARY_FILL = "#c7c7c7"
BOUNDARY_EDGE = "#8a8a8a"  # gray54
TEXT_COLOR = "#595959"  # gray35


def compute_color_domain(smoothed: pd.DataFrame, start: date, end: date) -> ColorDomain:
    """
    Color scale limits shared by every frame of a run.

    Computed once from the smoothed values inside [start, end], never per
    frame. A constant series is widened by 0.5 on each side so the scale
    stays usable.

    Raises:
        NoDataError: If there is no smoothed value in the range
    """
    mask = (smoothed["date"] >= start) & (smoothed["date"] <= end)
    values = smoothed.loc[mask, "smoothed"].dropna()
    if values.empty:
        raise NoDataError(f"No smoothed values between {start} and {end}")

    vmin, vmax = float(values.min()), float(values.max())
    if vmin == vmax:
        vmin, vmax = vmin - 0.5, vmax + 0.5
    return ColorDomain(vmin=vmin, vmax=vmax)


def load_boundaries(path: Path) -> List[Any]:
    """Read a boundary layer (any format geopandas can open) as a list of polygons."""
    try:
        import geopandas as gpd
    except ImportError:
        raise ImportError(
            "geopandas is required for boundary layers. Install with: pip install geopandas"
        ) from None

    gdf = gpd.read_file(path)
    if gdf.crs is not None:
        gdf = gdf.to_crs(epsg=4326)
    polygons = gdf.geometry.explode(index_parts=False)
    return [geom for geom in polygons if geom is not None and geom.geom_type == "Polygon"]


def _exterior(polygon: Any) -> List[Tuple[float, float]]:
    return list(polygon.exterior.coords)


class FrameRenderer(Renderer):
    """
    Draw one hexagon map per date.

    Args:
        cells: Grid cells to draw, by cell id
        domain: Fixed color scale limits for the whole run
        output_dir: Directory for the frame images
        width: Image width in pixels
        height: Image height in pixels
        dpi: Resolution used to convert pixels to inches
        colormap: Matplotlib colormap name
        label: Colorbar label
        boundaries: Optional polygons drawn underneath the cells
    """

    def __init__(
        self,
        cells: Dict[str, SpatialCell],
        domain: ColorDomain,
        output_dir: Path,
        width: int = 1200,
        height: int = 1200,
        dpi: int = 300,
        colormap: str = "viridis",
        label: str = "",
        boundaries: Optional[Sequence[Any]] = None,
    ):
        if not cells:
            raise NoDataError("No grid cells to render")
        self.cells = cells
        self.domain = domain
        self.output_dir = Path(output_dir)
        self.width = width
        self.height = height
        self.dpi = dpi
        self.cmap = matplotlib.colormaps[colormap]
        self.norm = Normalize(vmin=domain.vmin, vmax=domain.vmax)
        self.label = label
        self.boundaries = list(boundaries or [])
        self._cell_ids = sorted(cells)
        self._cell_shapes = [_exterior(cells[c].geometry) for c in self._cell_ids]
        self._extent = self._compute_extent()
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _compute_extent(self) -> Tuple[float, float, float, float]:
        shapes = [c.geometry for c in self.cells.values()] + self.boundaries
        bounds = [shape.bounds for shape in shapes]
        minx = min(b[0] for b in bounds)
        miny = min(b[1] for b in bounds)
        maxx = max(b[2] for b in bounds)
        maxy = max(b[3] for b in bounds)
        pad_x = (maxx - minx) * 0.02
        pad_y = (maxy - miny) * 0.02
        return (minx - pad_x, maxx + pad_x, miny - pad_y, maxy + pad_y)

    def draw(self, day: date, values: Dict[str, Optional[float]]) -> Figure:
        """
        Build the figure for one date on its own Agg canvas.

        Cells without a value are drawn in a neutral gray, not at either end
        of the color scale.
        """
        figure = Figure(figsize=(self.width / self.dpi, self.height / self.dpi), dpi=self.dpi)
        FigureCanvasAgg(figure)
        ax = figure.add_axes([0.02, 0.16, 0.96, 0.78])

        if self.boundaries:
            ax.add_collection(
                PolyCollection(
                    [_exterior(p) for p in self.boundaries],
                    facecolors=BOUNDARY_FILL,
                    edgecolors=BOUNDARY_EDGE,
                    linewidths=0.3,
                )
            )

        facecolors = []
        for cell_id in self._cell_ids:
            value = values.get(cell_id)
            if value is None or pd.isna(value):
                facecolors.append(NEUTRAL_COLOR)
            else:
                facecolors.append(self.cmap(self.norm(value)))
        ax.add_collection(
            PolyCollection(
                self._cell_shapes,
                facecolors=facecolors,
                edgecolors=EDGE_COLOR,
                linewidths=0.2,
            )
        )

        minx, maxx, miny, maxy = self._extent
        ax.set_xlim(minx, maxx)
        ax.set_ylim(miny, maxy)
        ax.set_aspect("equal", adjustable="box")
        ax.set_axis_off()
        ax.set_title(day.isoformat(), fontsize=8, color=TEXT_COLOR)

        colorbar_ax = figure.add_axes([0.3, 0.08, 0.4, 0.02])
        colorbar = figure.colorbar(
            cm.ScalarMappable(norm=self.norm, cmap=self.cmap),
            cax=colorbar_ax,
            orientation="horizontal",
        )
        colorbar.set_label(self.label, fontsize=8, color=TEXT_COLOR)
        colorbar.ax.tick_params(labelsize=6, colors=TEXT_COLOR)
        colorbar.outline.set_visible(False)

        return figure

    def render(self, day: date, values: Dict[str, Optional[float]]) -> Frame:
        """Render the frame for one date to output_dir."""
        figure = self.draw(day, values)
        path = self.output_dir / frame_filename(day)
        figure.canvas.print_png(str(path))
        logger.debug(f"Rendered {path.name}")
        return Frame(date=day, path=path)


def values_for_date(smoothed: pd.DataFrame, day: date, key: str = "cell_id") -> Dict[str, Optional[float]]:
    """Smoothed value of every series on one date; absent values become None."""
    rows = smoothed[smoothed["date"] == day]
    return {
        row[key]: (None if pd.isna(row["smoothed"]) else float(row["smoothed"]))
        for row in rows.to_dict("records")
    }


def render_frames(
    renderer: Renderer,
    smoothed: pd.DataFrame,
    dates: Iterable[date],
    workers: int = 1,
) -> List[Frame]:
    """
    Render every date independently.

    A date that fails to render is logged and skipped; the others are still
    produced. Frames are returned sorted by date regardless of the order in
    which they completed.
    """
    dates = list(dates)

    def _render_one(day: date) -> Optional[Frame]:
        try:
            return renderer.render(day, values_for_date(smoothed, day))
        except Exception:
            logger.exception(f"Failed to render frame for {day}")
            return None

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(_render_one, dates))
    else:
        results = [_render_one(day) for day in dates]

    frames = sorted((f for f in results if f is not None), key=lambda f: f.date)
    failed = len(dates) - len(frames)
    if failed:
        logger.warning(f"{failed} of {len(dates)} frames failed to render")
    logger.info(f"Rendered {len(frames)} frames")
    return frames
