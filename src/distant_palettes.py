import cmocean
import numpy             as np
import pandas            as pd
import matplotlib        as mpl
from matplotlib.colors   import LinearSegmentedColormap, to_hex, to_rgba_array
from distant_layers      import Legend

__all__ = ["NA_COLOR", "BIOREGION_TABLE", "CategoricalPalette", "ContinuousPalette",
           "sample_colormap", "fills_to_rgba"]

NA_COLOR = "#FFFFFF00"

# Fabri-Ruiz et al. (2020) benthic bioregions; position i (1-based) is category i
BIOREGION_TABLE = (("Antarctic inner shelf"        , "#2A5178"),
                   ("Antarctic outer shelf"        , "#599D8E"),
                   ("Antarctic deep slope"         , "#94FA8D"),
                   ("Antarctic deep shelf"         , "#14115E"),
                   ("Ice shelf frontal zone"       , "#FFFD8C"),
                   ("Transition area"              , "#BFBFBF"),
                   ("Subantarctic deep slope"      , "#760107"),
                   ("Subantarctic island and shelf", "#FAB067"),
                   ("Subantarctic deep shelf"      , "#DD0721"),
                   ("Campbell Plateau"             , "#A24526"),
                   ("Deep Magellanic shelf"        , "#FB3244"),
                   ("Magellanic Plateau"           , "#8869AC"))

def sample_colormap(cmap, n, reverse=False):
    """
    Sample `n` evenly spaced colours from a named matplotlib (or cmocean) colormap.

    Returns a tuple of uppercase ``#RRGGBB`` strings, first colour at the low end
    of the map (last when `reverse` is True).
    """
    if isinstance(cmap, str):
        cmap = mpl.colormaps[cmap] if cmap in mpl.colormaps else cmocean.cm.cmap_d[cmap]
    colors = [to_hex(c).upper() for c in cmap(np.linspace(0, 1, n))]
    if reverse:
        colors = colors[::-1]
    return tuple(colors)

class CategoricalPalette:
    """
    Discrete palette for classified rasters.

    Category index ``i`` (1-based) is drawn with ``colors[i-1]``; the text label
    plays no part in the lookup. Values outside ``1..N`` and missing values are
    drawn with the transparent `na_color`.
    """
    kind = "categorical"

    def __init__(self, table, title, na_color=NA_COLOR):
        self.labels   = tuple(lab for lab, _ in table)
        self.colors   = tuple(clr.upper() for _, clr in table)
        self.title    = title
        self.na_color = na_color

    def __len__(self):
        return len(self.colors)

    def color_for(self, index):
        if index is None or pd.isna(index):
            return self.na_color
        index = int(index)
        if 1 <= index <= len(self.colors):
            return self.colors[index - 1]
        return self.na_color

    def resolve(self, values, limits=None):
        """Map category indices to fills; `limits` is accepted for interface parity and ignored."""
        lut = np.array((self.na_color,) + self.colors, dtype=object)
        idx = _as_float(values)
        ok  = np.isfinite(idx) & (idx >= 1) & (idx <= len(self.colors)) & (np.round(idx) == idx)
        pos = np.where(ok, np.nan_to_num(idx), 0).astype(int)
        return lut[pos]

    def data_limits(self, values):
        return None

    def legend(self, limits=None):
        return Legend(title=self.title, kind=self.kind, entries=tuple(zip(self.labels, self.colors)))

class ContinuousPalette:
    """
    Colour ramp over a numeric domain, linear between the data minimum and maximum.

    Parameters
    ----------
    colors : sequence of str
        Ramp from the lowest to the highest value.
    title : str
        Legend title.
    na_color : str, default "#FFFFFF00"
        Fill for missing values.
    """
    kind = "continuous"

    def __init__(self, colors, title, na_color=NA_COLOR):
        self.colors   = tuple(c.upper() for c in colors)
        self.title    = title
        self.na_color = na_color
        self.cmap     = LinearSegmentedColormap.from_list(title, list(self.colors), N=256)

    @classmethod
    def from_cmap(cls, cmap, n, title, reverse=False, na_color=NA_COLOR):
        return cls(sample_colormap(cmap, n, reverse=reverse), title, na_color=na_color)

    def data_limits(self, values):
        vals = _as_float(values)
        vals = vals[np.isfinite(vals)]
        if vals.size == 0:
            return None
        return (float(vals.min()), float(vals.max()))

    def resolve(self, values, limits=None):
        vals   = _as_float(values)
        out    = np.full(vals.shape, self.na_color, dtype=object)
        limits = limits if limits is not None else self.data_limits(vals)
        finite = np.isfinite(vals)
        if limits is None or not finite.any():
            return out
        vmin, vmax = limits
        if vmax > vmin:
            scaled = np.clip((vals[finite] - vmin) / (vmax - vmin), 0.0, 1.0)
        else:
            scaled = np.full(finite.sum(), 0.5)
        rgba        = self.cmap(scaled)
        out[finite] = [to_hex(c).upper() for c in rgba]
        return out

    def legend(self, limits=None):
        return Legend(title=self.title, kind=self.kind, colors=self.colors, limits=limits)

def fills_to_rgba(fills):
    """Convert hex fills (including the transparent NA colour) to an (N, 4) float array."""
    if len(fills) == 0:
        return np.zeros((0, 4))
    return to_rgba_array(list(fills))

def _as_float(values):
    # nullable Int64 (categorical cells) and object columns both end up as float with NaN
    return pd.to_numeric(pd.Series(values), errors="coerce").astype("float64").to_numpy()
