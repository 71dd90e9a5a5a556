from dataclasses import dataclass, field, replace
from typing      import Any, NamedTuple, Optional, Tuple

__all__ = ["BoundingBox", "Drawable", "Legend", "Theme", "BaseMap", "StyledMapLayer",
           "compose_drawables"]

DRAWABLE_KINDS = ("extent", "raster", "polygon", "path", "data")

class BoundingBox(NamedTuple):
    """Geographic crop box in degrees; bounds are inclusive."""
    min_lon : float
    max_lon : float
    min_lat : float
    max_lat : float

    def contains(self, lon, lat):
        return (lon >= self.min_lon) & (lon <= self.max_lon) & (lat >= self.min_lat) & (lat <= self.max_lat)

@dataclass(frozen=True, eq=False)
class Drawable:
    """
    One ordered element of a map.

    Parameters
    ----------
    name : str
        Slot name, unique within a map (``"init"``, ``"coastline"``, ``"data"`` ...).
    kind : {'extent', 'raster', 'polygon', 'path', 'data'}
        How `DistantPlotter` draws it.
    data : pandas.DataFrame or geopandas.GeoDataFrame
        Geometry or cells in the map CRS.
    style : dict
        Fixed plotting arguments (fills, pens, palettes).
    """
    name  : str
    kind  : str
    data  : Any
    style : dict = field(default_factory=dict)

    def __post_init__(self):
        if self.kind not in DRAWABLE_KINDS:
            raise ValueError(f"Unknown drawable kind '{self.kind}'; expected one of {DRAWABLE_KINDS}")

@dataclass(frozen=True)
class Legend:
    """Legend derived from a palette rule."""
    title   : str
    kind    : str                                   # 'categorical' or 'continuous'
    entries : Tuple[Tuple[str, str], ...] = ()      # (label, colour) for categorical legends
    colors  : Tuple[str, ...]             = ()      # colour ramp for continuous legends
    limits  : Optional[Tuple[float, float]] = None  # finite data range, None when no data

@dataclass(frozen=True)
class Theme:
    base_size       : float = 11
    font_family     : str   = "sans-serif"
    legend_position : str   = "right"
    void            : bool  = False

@dataclass(frozen=True, eq=False)
class BaseMap:
    """
    Shared circumpolar background, built once per run and never mutated.

    `bathy_palette` is ordered deepest bin first; `radius` is the largest
    distance from the pole of any valid bathymetry cell (target CRS units).
    """
    drawables     : Tuple[Drawable, ...]
    crs           : str
    radius        : float
    bathy_palette : Tuple[str, ...]

    @property
    def deepest_color(self):
        return self.bathy_palette[0]

    def names(self):
        return [d.name for d in self.drawables]

    def get(self, name):
        for d in self.drawables:
            if d.name == name:
                return d
        raise KeyError(f"base map has no drawable named '{name}'")

@dataclass(frozen=True, eq=False)
class StyledMapLayer:
    """A fully styled, cacheable map: base drawables + one data drawable + legend + theme."""
    key       : str
    title     : str
    drawables : Tuple[Drawable, ...]
    legend    : Legend
    theme     : Theme
    crs       : str

    def names(self):
        return [d.name for d in self.drawables]

    def primary_data(self):
        """Return the data drawable, whatever its position in the drawing order."""
        matches = [d for d in self.drawables if d.kind == "data"]
        if len(matches) != 1:
            raise ValueError(f"layer '{self.key}' has {len(matches)} data drawables; expected exactly one")
        return matches[0]

    def with_theme(self, theme):
        return replace(self, theme=theme)

def compose_drawables(base, replace_slot=None, replacement=None, insert_after=None, extra=None):
    """
    Build a new drawable tuple from `base` without touching it.

    Parameters
    ----------
    base : BaseMap
        Template whose drawables are copied by reference into the new tuple.
    replace_slot : str, optional
        Name of the base drawable whose position `replacement` takes.
    replacement : Drawable, optional
        Drawable put in place of `replace_slot`.
    insert_after : str, optional
        Name of the drawable after which `extra` is inserted.
    extra : Drawable, optional
        Additional drawable (e.g. a background) placed right after `insert_after`.

    Returns
    -------
    tuple of Drawable
    """
    out = []
    for d in base.drawables:
        if replace_slot is not None and d.name == replace_slot:
            out.append(replacement)
        else:
            out.append(d)
        if extra is not None and d.name == insert_after:
            out.append(extra)
    if replace_slot is not None and replacement not in out:
        raise KeyError(f"base map has no drawable named '{replace_slot}'")
    if extra is not None and extra not in out:
        raise KeyError(f"base map has no drawable named '{insert_after}'")
    return tuple(out)
