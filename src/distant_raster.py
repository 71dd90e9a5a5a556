import logging
import xarray            as xr
import numpy             as np
import pandas            as pd
import rioxarray
from pathlib             import Path
from pyproj              import CRS, Transformer
from rasterio.enums      import Resampling
from distant_config      import LOGGER_NAME
from distant_errors      import RasterLoadError

__all__ = ["DistantRaster", "latitude_mask", "normalise_longitudes", "rank_categories"]

def normalise_longitudes(lon, to="-180-180", eps=1e-12):
    """
    Wrap longitudes to either [0, 360) or [-180, 180).
    Works with numpy arrays and scalars; NaNs pass through.
    """
    lon_wrapped = ((np.asarray(lon, dtype=float) % 360) + 360) % 360
    if to == "0-360":
        return np.where(np.isclose(lon_wrapped, 360.0, atol=eps), 0.0, lon_wrapped)
    elif to == "-180-180":
        lon_180 = ((lon_wrapped + 180.0) % 360.0) - 180.0
        return np.where(np.isclose(lon_180, 180.0, atol=eps), -180.0, lon_180)
    else:
        raise ValueError("to must be '0-360' or '-180-180'")

def rank_categories(values):
    """
    Replace category codes with their 1-based rank among the distinct finite codes.

    Codes are rounded to integers first; NaN stays NaN. Returns the ranked
    array and the sorted source codes, so that ``codes[i-1]`` is the code of rank ``i``.
    """
    values = np.asarray(values, dtype="float64")
    finite = np.isfinite(values)
    codes, inverse = np.unique(np.round(values[finite]), return_inverse=True)
    ranks         = np.full(values.shape, np.nan)
    ranks[finite] = inverse + 1
    return ranks, tuple(float(c) for c in codes)

def latitude_mask(lat, max_lat):
    """True where `lat` is strictly south of `max_lat`; a cell exactly on `max_lat` is dropped."""
    lat = np.asarray(lat, dtype=float)
    return np.isfinite(lat) & (lat < max_lat)

class DistantRaster:
    """
    Load, crop, reproject and tabulate single-band rasters.

    Parameters
    ----------
    config : DistantConfig
        Supplies `target_crs`, `D_local_data` and `data_base_url`.
    logger : logging.Logger, optional
        Defaults to the shared 'distant' logger.
    """

    def __init__(self, config, logger=None):
        self.config = config
        self.logger = logger if logger is not None else logging.getLogger(LOGGER_NAME)

    def resolve_source(self, rel_path):
        """Prefer the locally mirrored copy of `rel_path`; fall back to reading it over HTTP."""
        P_local = Path(self.config.D_local_data, rel_path)
        if P_local.exists():
            self.logger.debug(f"using local copy {P_local}")
            return str(P_local)
        url = self.config.data_base_url.rstrip("/") + "/" + str(rel_path).lstrip("/")
        self.logger.debug(f"no local copy of {rel_path}; reading {url}")
        return url

    def load_raster(self, source, bbox=None, categorical=False, band=1, value_name=None):
        """
        Read one band of a raster fully into memory, optionally cropped to a geographic box.

        Parameters
        ----------
        source : str or pathlib.Path
            Local path or http(s) URL of any GDAL-readable raster (COGs included).
        bbox : BoundingBox, optional
            Inclusive geographic box; cells whose centres fall outside are removed
            before anything else happens to the raster.
        categorical : bool, default False
            Recode the distinct source values to their 1-based ordinal rank and
            flag the raster as categorical. Rank ``i`` later resolves to the i-th
            palette colour; the source code of each rank is kept in
            ``attrs["category_codes"]``.
        band : int, default 1
            Band to keep from multi-band sources.
        value_name : str, optional
            Name given to the values (``attrs['long_name']``).

        Returns
        -------
        xarray.DataArray
            2-D ``(y, x)`` float array with NaN for no-data and a rioxarray CRS.

        Raises
        ------
        RasterLoadError
            If the source cannot be opened, lacks a CRS or the band, or the crop
            leaves no cells.
        """
        self.logger.info(f"loading raster {source}")
        try:
            with rioxarray.open_rasterio(source, masked=True) as src:
                if "band" in src.dims:
                    if band not in src["band"].values:
                        raise RasterLoadError(f"{source} has no band {band}")
                    da = src.sel(band=band)
                else:
                    da = src
                da = da.load()
        except RasterLoadError:
            raise
        except Exception as e:
            raise RasterLoadError(f"could not read raster {source}: {e}") from e
        if da.rio.crs is None:
            raise RasterLoadError(f"{source} has no coordinate reference system")
        da = da.astype("float64")
        if bbox is not None:
            da = self.crop_to_bbox(da, bbox)
        if categorical:
            ranks, codes = rank_categories(da.values)
            da = da.copy(data=ranks)
            da.attrs["category_codes"] = codes
        da.attrs["categorical"] = bool(categorical)
        da.name                 = value_name if value_name is not None else (da.name or "value")
        da.attrs["long_name"]   = da.name
        self.logger.info(f"loaded {da.name}: {da.sizes['y']} x {da.sizes['x']} cells, CRS {da.rio.crs.to_string()}")
        return da

    def geographic_coords(self, da):
        """Longitude/latitude of every cell centre of `da`, as two (y, x) arrays."""
        X2D, Y2D = np.meshgrid(da["x"].values, da["y"].values)
        crs      = CRS.from_user_input(da.rio.crs)
        if crs.is_geographic:
            return normalise_longitudes(X2D), Y2D
        T        = Transformer.from_crs(crs, "EPSG:4326", always_xy=True)
        lon, lat = T.transform(X2D, Y2D)
        return normalise_longitudes(lon), np.asarray(lat)

    def crop_to_bbox(self, da, bbox):
        """
        Mask cells whose centres fall outside `bbox` and drop fully masked edge rows/columns.

        Longitudes are compared on [-180, 180); the box is inclusive on every edge.
        """
        lon, lat = self.geographic_coords(da)
        lon_min  = float(normalise_longitudes(bbox.min_lon)) if bbox.min_lon > -180 else -180.0
        lon_max  = float(normalise_longitudes(bbox.max_lon)) if bbox.max_lon <  180 else  180.0
        if lon_min <= lon_max:
            mask_lon = (lon >= lon_min) & (lon <= lon_max)
        else:
            # crosses dateline / wrap seam
            mask_lon = (lon >= lon_min) | (lon <= lon_max)
        mask_lat = (lat >= bbox.min_lat) & (lat <= bbox.max_lat)
        mask     = mask_lon & mask_lat
        if not mask.any():
            raise RasterLoadError(f"no cells of '{da.name}' fall inside {tuple(bbox)}")
        attrs = dict(da.attrs)
        out   = da.where(xr.DataArray(mask, dims=("y", "x"), coords={"y": da["y"], "x": da["x"]}))
        j_idx = np.where(mask.any(axis=1))[0]
        i_idx = np.where(mask.any(axis=0))[0]
        out   = out.isel(y=slice(j_idx.min(), j_idx.max() + 1), x=slice(i_idx.min(), i_idx.max() + 1))
        out.attrs.update(attrs)
        self.logger.debug(f"cropped to {tuple(bbox)}: {int(mask.sum())} cells inside")
        return out

    def reproject(self, raster, target_crs=None):
        """Reproject `raster` onto `target_crs`; categorical rasters always use nearest neighbour."""
        target_crs = target_crs if target_crs is not None else self.config.target_crs
        # nearest is the rioxarray default; keep it explicit for category indices
        return raster.rio.write_nodata(np.nan).rio.reproject(target_crs, resampling=Resampling.nearest, nodata=np.nan)

    def tabulate(self, raster, value_name=None, categorical=None):
        """
        Flatten a 2-D raster into long format ``x, y, <value_name>``.

        Rows follow the raster's row-major order. No-data cells are kept with NaN
        (or ``pd.NA`` in the ``Int64`` column of categorical rasters) so they draw
        transparent.
        """
        value_name  = value_name  if value_name  is not None else (raster.name or "value")
        categorical = categorical if categorical is not None else raster.attrs.get("categorical", False)
        xs, ys      = np.meshgrid(raster["x"].values, raster["y"].values)
        df          = pd.DataFrame({"x"        : xs.ravel().astype("float64"),
                                    "y"        : ys.ravel().astype("float64"),
                                    value_name : np.asarray(raster.values, dtype="float64").ravel()})
        if categorical:
            df[value_name] = df[value_name].round().astype("Int64")
        return df

    def project(self, raster, target_crs=None):
        """Reproject `raster` into `target_crs` and return its cells as a DataFrame."""
        target_crs = target_crs if target_crs is not None else self.config.target_crs
        projected  = self.reproject(raster, target_crs)
        cells      = self.tabulate(projected, value_name=raster.name,
                                   categorical=raster.attrs.get("categorical", False))
        self.logger.info(f"projected {raster.name} to {target_crs}: {len(cells)} cells "
                         f"({int(cells[cells.columns[2]].notna().sum())} with data)")
        return cells

    def filter_by_latitude(self, cells, max_lat, crs=None):
        """
        Keep only cells whose back-projected latitude is strictly south of `max_lat`.

        The cells' projected ``x, y`` are converted back to geographic coordinates
        and tested against the latitude circle, which a rectangular crop in the
        projected frame cannot express.
        """
        crs = crs if crs is not None else self.config.target_crs
        if cells.empty:
            return cells.copy()
        T       = Transformer.from_crs(crs, "EPSG:4326", always_xy=True)
        _, lat  = T.transform(cells["x"].to_numpy(), cells["y"].to_numpy())
        keep    = latitude_mask(lat, max_lat)
        self.logger.info(f"latitude filter < {max_lat}: kept {int(keep.sum())} of {len(cells)} cells")
        return cells.loc[keep].reset_index(drop=True)
