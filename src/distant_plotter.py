import logging
import numpy                 as np
from matplotlib.cm           import ScalarMappable
from matplotlib.collections  import PatchCollection
from matplotlib.colors       import LinearSegmentedColormap, Normalize
from matplotlib.figure       import Figure
from matplotlib.font_manager import FontProperties
from matplotlib.patches      import Patch, PathPatch
from matplotlib.path         import Path
from distant_config          import LOGGER_NAME
from distant_palettes        import fills_to_rgba

__all__ = ["DistantPlotter"]

class DistantPlotter:
    """
    Render a `StyledMapLayer` onto a matplotlib `Figure`.

    Only the object-oriented API is used: no `pyplot`, no changes to
    `matplotlib.rcParams`. The theme font is handed to every text element as
    a `FontProperties`, so several display sessions can render at the same
    time on different threads without affecting each other.
    Drawables are drawn in tuple order, each on top of the previous one.
    """

    def __init__(self, config, logger=None):
        self.config = config
        self.logger = logger if logger is not None else logging.getLogger(LOGGER_NAME)

    @staticmethod
    def theme_font(theme, scale=1.0):
        return FontProperties(family=[theme.font_family, "sans-serif"], size=theme.base_size * scale)

    def render_layer(self, layer, fig_size=None, dpi=None):
        """
        Draw every drawable of `layer`, then its legend, under its theme.

        Parameters
        ----------
        layer : StyledMapLayer
        fig_size : tuple of float, optional
            Figure size in inches; defaults to ``(config.fig_width, config.fig_height)``.
        dpi : int, optional
            Defaults to ``config.dpi``.

        Returns
        -------
        matplotlib.figure.Figure
        """
        fig_size = fig_size if fig_size is not None else (self.config.fig_width, self.config.fig_height)
        dpi      = dpi      if dpi      is not None else self.config.dpi
        theme    = layer.theme
        fig      = Figure(figsize=fig_size, dpi=dpi)
        ax       = fig.add_subplot()
        ax.set_aspect("equal")
        for zorder, d in enumerate(layer.drawables, start=1):
            self.logger.debug(f"{layer.key}: drawing {d.name} ({d.kind})")
            getattr(self, f"_draw_{d.kind}")(ax, d, zorder)
        if theme.void:
            ax.set_axis_off()
        else:
            ax.tick_params(labelsize=theme.base_size)
        self.draw_legend(fig, ax, layer.legend, theme)
        return fig

    def _draw_extent(self, ax, d, zorder):
        ax.set_xlim(d.data["x"].min(), d.data["x"].max())
        ax.set_ylim(d.data["y"].min(), d.data["y"].max())

    def _draw_raster(self, ax, d, zorder):
        df = d.data
        if df.empty:
            return
        fills = d.style["palette"].resolve(df[d.style["value"]], d.style.get("limits"))
        image, extent = self.cells_to_image(df["x"].to_numpy(), df["y"].to_numpy(), fills_to_rgba(fills))
        ax.imshow(image, origin="lower", extent=extent, interpolation="nearest", zorder=zorder)

    _draw_data = _draw_raster

    def _draw_polygon(self, ax, d, zorder):
        df = d.data
        if len(df) == 0:
            return
        style = d.style
        if not hasattr(df, "geometry"):
            ax.fill(df["x"], df["y"], zorder=zorder, **style)
            return
        if "fill_column" in style:
            fills = df[style["fill_column"]].tolist()
        else:
            fills = [style.get("facecolor", "none")] * len(df)
        patches, colors = [], []
        for geom, fill in zip(df.geometry, fills):
            for path in self.polygon_paths(geom):
                patches.append(PathPatch(path))
                colors.append(fill)
        if not patches:
            return
        ax.add_collection(PatchCollection(patches,
                                          facecolors = colors,
                                          edgecolors = style.get("edgecolor", "none"),
                                          linewidths = style.get("linewidth", 0.2),
                                          zorder     = zorder))

    def _draw_path(self, ax, d, zorder):
        for _, grp in d.data.groupby("group", sort=False):
            ax.plot(grp["x"], grp["y"], zorder=zorder, **d.style)

    @staticmethod
    def polygon_paths(geom):
        """One compound `Path` (exterior plus holes) per polygon part of `geom`; other parts are skipped."""
        if geom is None or geom.is_empty:
            return []
        parts = getattr(geom, "geoms", [geom])
        paths = []
        for part in parts:
            if part.geom_type in ("MultiPolygon", "GeometryCollection"):
                paths.extend(DistantPlotter.polygon_paths(part))
                continue
            if part.geom_type != "Polygon" or part.is_empty:
                continue
            rings = [part.exterior, *part.interiors]
            verts = np.concatenate([np.asarray(r.coords)[:, :2] for r in rings])
            codes = np.concatenate([[Path.MOVETO] + [Path.LINETO] * (len(r.coords) - 2) + [Path.CLOSEPOLY]
                                    for r in rings])
            paths.append(Path(verts, codes))
        return paths

    @staticmethod
    def cells_to_image(x, y, rgba):
        """
        Pivot regularly spaced cell centres into an ``(ny, nx, 4)`` image.

        Positions without a cell stay fully transparent. Returns the image and
        its ``[left, right, bottom, top]`` extent for ``imshow(origin='lower')``.
        """
        xs, ys = np.unique(x), np.unique(y)
        dx     = np.diff(xs).min() if xs.size > 1 else 1.0
        dy     = np.diff(ys).min() if ys.size > 1 else 1.0
        image  = np.zeros((ys.size, xs.size, 4))
        image[np.searchsorted(ys, y), np.searchsorted(xs, x)] = rgba
        extent = [xs[0] - dx / 2, xs[-1] + dx / 2, ys[0] - dy / 2, ys[-1] + dy / 2]
        return image, extent

    def draw_legend(self, fig, ax, legend, theme):
        font  = self.theme_font(theme)
        small = self.theme_font(theme, scale=0.833)
        if legend.kind == "categorical":
            handles = [Patch(facecolor=clr, edgecolor="none", label=lab) for lab, clr in legend.entries]
            if theme.legend_position == "bottom":
                placement = {"loc": "upper center", "bbox_to_anchor": (0.5, -0.02), "ncol": 3}
            else:
                placement = {"loc": "center left", "bbox_to_anchor": (1.02, 0.5)}
            ax.legend(handles=handles, title=legend.title, frameon=False,
                      prop=small, title_fontproperties=font, **placement)
        elif legend.limits is not None:
            cmap = LinearSegmentedColormap.from_list(legend.title, list(legend.colors))
            sm   = ScalarMappable(norm=Normalize(*legend.limits), cmap=cmap)
            if theme.legend_position == "bottom":
                cbar = fig.colorbar(sm, ax=ax, location="bottom", shrink=0.6, pad=0.02)
            else:
                cbar = fig.colorbar(sm, ax=ax, orientation="vertical", shrink=0.6)
            cbar.set_label(legend.title, fontproperties=font)
            cbar.ax.tick_params(labelsize=small.get_size())
        else:
            self.logger.debug(f"no legend drawn for '{legend.title}': no data range")
