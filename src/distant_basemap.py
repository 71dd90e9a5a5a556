import logging
import numpy             as np
import pandas            as pd
import geopandas         as gpd
import rioxarray
from pathlib             import Path
from pyproj              import CRS, Transformer
from pyproj.exceptions   import CRSError
from rasterio.enums      import Resampling
from shapely.geometry    import Point, Polygon
from distant_config      import LOGGER_NAME
from distant_errors      import BaseMapError
from distant_layers      import BaseMap, Drawable
from distant_palettes    import ContinuousPalette, sample_colormap
from distant_raster      import DistantRaster

__all__ = ["DistantBaseMap"]

class DistantBaseMap:
    """
    Build the shared circumpolar background every dataset layer is drawn on.

    The base map is a fixed stack of drawables in the target polar stereographic
    CRS:

    ``init``       invisible extent holder (trim circle plus border)
    ``bathymetry`` seafloor depth, cmocean 'deep' palette
    ``coastline``  land polygons, flat grey
    ``ice``        ice shelf polygons, flat white
    ``graticule``  meridians and parallels
    ``border``     alternating black/white latitude ring at the trim latitude

    Parameters
    ----------
    config : DistantConfig
    logger : logging.Logger, optional
    """

    def __init__(self, config, logger=None):
        self.config = config
        self.logger = logger if logger is not None else logging.getLogger(LOGGER_NAME)
        self.raster = DistantRaster(config, logger=self.logger)

    def validate_crs(self):
        """
        Parse `config.target_crs` and insist on a polar stereographic projection.

        Raises
        ------
        BaseMapError
            If pyproj cannot parse the CRS or it is not a polar stereographic projection.
        """
        try:
            crs = CRS.from_user_input(self.config.target_crs)
        except CRSError as e:
            raise BaseMapError(f"invalid target CRS '{self.config.target_crs}': {e}") from e
        method = crs.coordinate_operation.method_name if crs.coordinate_operation is not None else ""
        if not crs.is_projected or "polar stereographic" not in method.lower():
            raise BaseMapError(f"target CRS '{self.config.target_crs}' is not a polar stereographic projection "
                               f"(method: '{method or 'none'}')")
        return crs

    def latitude_radius(self, lat, crs=None):
        """Distance from the pole (target CRS units) of the latitude circle `lat`."""
        crs  = crs if crs is not None else self.validate_crs()
        T    = Transformer.from_crs("EPSG:4326", crs, always_xy=True)
        x, y = T.transform(0.0, lat)
        return float(np.hypot(x, y))

    def _project_lonlat(self, lon, lat, crs):
        T    = Transformer.from_crs("EPSG:4326", crs, always_xy=True)
        x, y = T.transform(np.asarray(lon, dtype=float), np.asarray(lat, dtype=float))
        return np.asarray(x), np.asarray(y)

    def load_coastline(self, P_shape=None):
        """
        Read the coastline shapefile and split it into land and ice shelf polygons.

        Polygons with ``POLY_TYPE == 'S'`` are ice shelves; all other polygons
        are treated as land. Files without a ``POLY_TYPE`` column are all land.

        Returns
        -------
        tuple of geopandas.GeoDataFrame
            ``(coastline, ice)`` in the shapefile's own CRS.
        """
        P_shape = P_shape if P_shape is not None else self.config.P_coast_shape
        if not Path(P_shape).exists():
            raise BaseMapError(f"coastline shapefile not found: {P_shape}")
        gdf = gpd.read_file(P_shape)
        return self.split_coastline(gdf)

    def split_coastline(self, gdf):
        gdf = gdf[~gdf.geometry.is_empty & gdf.geometry.notnull()]
        if "POLY_TYPE" in gdf.columns:
            is_shelf = gdf["POLY_TYPE"] == "S"
            return gdf[~is_shelf], gdf[is_shelf]
        return gdf, gdf.iloc[0:0]

    def load_bathymetry(self, P_bath=None):
        """
        Read the bathymetry grid (IBCSO or any GDAL-readable depth raster).

        Returns
        -------
        xarray.DataArray
            2-D depth grid with its CRS, NaN where no data.
        """
        P_bath = P_bath if P_bath is not None else self.config.P_IBCSO_bath
        if not Path(P_bath).exists():
            raise BaseMapError(f"bathymetry grid not found: {P_bath}")
        try:
            return self.raster.load_raster(P_bath, value_name="depth")
        except Exception as e:
            raise BaseMapError(f"could not read bathymetry grid {P_bath}: {e}") from e

    def prepare_bathymetry(self, P_bed, P_out):
        """
        Coarsen a full-resolution bed elevation grid into the bathymetry the base map reads.

        Only negative elevations (seafloor) are kept; the result is averaged onto
        `config.bathy_resolution` cells in the target CRS and written as a GeoTIFF.
        Typically run once before the first pipeline run.
        """
        with rioxarray.open_rasterio(P_bed, masked=True) as src:
            bed = src.isel(band=0) if "band" in src.dims else src
            bed = bed.where(bed < 0)
            out = bed.rio.reproject(self.config.target_crs,
                                    resolution = self.config.bathy_resolution,
                                    resampling = Resampling.average,
                                    nodata     = np.nan)
        out.name = "depth"
        Path(P_out).parent.mkdir(parents=True, exist_ok=True)
        out.rio.to_raster(P_out)
        self.logger.info(f"wrote coarsened bathymetry to {P_out}")
        return P_out

    def bathymetry_cells(self, bathy, crs, r_trim):
        """Resample bathymetry to the target grid, drop land and cells beyond the trim circle."""
        bathy   = bathy.rio.write_nodata(np.nan).rio.reproject(crs,
                                                           resolution = self.config.bathy_resolution,
                                                           resampling = Resampling.average,
                                                           nodata     = np.nan)
        cells   = self.raster.tabulate(bathy, value_name="depth", categorical=False)
        r       = np.hypot(cells["x"].to_numpy(), cells["y"].to_numpy())
        invalid = ~(cells["depth"].to_numpy() < 0) | (r > r_trim)
        cells.loc[invalid, "depth"] = np.nan
        return cells

    def graticule(self, crs):
        """Meridians and parallels between the trim latitude and the pole as projected paths."""
        trim      = self.config.trim
        lat_line  = np.linspace(trim, -90.0, 91)
        lon_line  = np.linspace(-180.0, 180.0, 361)
        frames    = []
        for lon in np.arange(-180.0, 180.0, self.config.graticule_lon_step):
            x, y = self._project_lonlat(np.full_like(lat_line, lon), lat_line, crs)
            frames.append(pd.DataFrame({"x": x, "y": y, "group": f"lon{lon:g}"}))
        for lat in np.arange(trim, -90.0, -self.config.graticule_lat_step):
            x, y = self._project_lonlat(lon_line, np.full_like(lon_line, lat), crs)
            frames.append(pd.DataFrame({"x": x, "y": y, "group": f"lat{lat:g}"}))
        return pd.concat(frames, ignore_index=True)

    def border(self, crs):
        """Alternating black/white blocks between the trim latitude and `trim + border_width`."""
        lat_in  = self.config.trim
        lat_out = self.config.trim + self.config.border_width
        step    = self.config.graticule_lon_step / 2
        polys, fills = [], []
        for i, lon0 in enumerate(np.arange(-180.0, 180.0, step)):
            lons   = np.linspace(lon0, lon0 + step, 16)
            xi, yi = self._project_lonlat(lons, np.full_like(lons, lat_in), crs)
            xo, yo = self._project_lonlat(lons[::-1], np.full_like(lons, lat_out), crs)
            polys.append(Polygon(np.column_stack([np.r_[xi, xo], np.r_[yi, yo]])))
            fills.append("#000000" if i % 2 == 0 else "#FFFFFF")
        return gpd.GeoDataFrame({"fill": fills}, geometry=polys, crs=crs)

    def _prepare_polygons(self, gdf, crs, clip_radius):
        if gdf.crs is None:
            raise BaseMapError("coastline polygons carry no CRS")
        gdf          = gdf.to_crs(crs)
        gdf          = gdf.copy()
        gdf.geometry = gdf.geometry.buffer(0)
        circle       = gpd.GeoDataFrame(geometry=[Point(0, 0).buffer(clip_radius, 128)], crs=crs)
        return gpd.clip(gdf, circle).reset_index(drop=True)

    def build_base_map(self, coastline=None, ice=None, bathy=None):
        """
        Construct the circumpolar base map.

        Parameters
        ----------
        coastline : geopandas.GeoDataFrame, optional
            Coastline polygons; if given without `ice`, ice shelves are split
            out by ``POLY_TYPE``. Read from `config.P_coast_shape` when omitted.
        ice : geopandas.GeoDataFrame, optional
            Ice shelf polygons.
        bathy : xarray.DataArray, optional
            Depth grid with a CRS. Read from `config.P_IBCSO_bath` when omitted.

        Returns
        -------
        BaseMap

        Raises
        ------
        BaseMapError
            Invalid projection, missing or unreadable sources, or no valid
            bathymetry inside the trim circle. Fatal to a pipeline run.
        """
        crs      = self.validate_crs()
        crs_str  = self.config.target_crs
        r_trim   = self.latitude_radius(self.config.trim, crs)
        r_border = self.latitude_radius(self.config.trim + self.config.border_width, crs)
        self.logger.info(f"building base map in {crs_str}: trim {self.config.trim} (radius {r_trim:.0f})")
        if coastline is None:
            coastline, ice = self.load_coastline()
        elif ice is None:
            coastline, ice = self.split_coastline(coastline)
        bathy = bathy if bathy is not None else self.load_bathymetry()
        if bathy.rio.crs is None:
            raise BaseMapError("bathymetry grid carries no CRS")
        bath_cells = self.bathymetry_cells(bathy, crs, r_trim)
        valid      = bath_cells["depth"].notna().to_numpy()
        if not valid.any():
            raise BaseMapError("no valid bathymetry inside the trim circle")
        radius    = float(np.hypot(bath_cells["x"].to_numpy()[valid], bath_cells["y"].to_numpy()[valid]).max())
        palette   = sample_colormap(self.config.bathy_cmap, self.config.bathy_n_colors, reverse=True)
        bath_pal  = ContinuousPalette(palette, "Depth")
        extent    = pd.DataFrame({"x": [-r_border, r_border], "y": [-r_border, r_border]})
        drawables = (Drawable("init"      , "extent" , extent),
                     Drawable("bathymetry", "raster" , bath_cells,
                              {"value": "depth", "palette": bath_pal,
                               "limits": bath_pal.data_limits(bath_cells["depth"])}),
                     Drawable("coastline" , "polygon", self._prepare_polygons(coastline, crs, r_trim),
                              {"facecolor": self.config.coast_fill, "edgecolor": "#4D4D4D", "linewidth": 0.2}),
                     Drawable("ice"       , "polygon", self._prepare_polygons(ice, crs, r_trim),
                              {"facecolor": self.config.ice_fill, "edgecolor": "#4D4D4D", "linewidth": 0.2}),
                     Drawable("graticule" , "path"   , self.graticule(crs),
                              {"color": "#7F7F7F", "linewidth": 0.4, "linestyle": "--"}),
                     Drawable("border"    , "polygon", self.border(crs),
                              {"fill_column": "fill", "edgecolor": "#000000", "linewidth": 0.2}))
        self.logger.info(f"base map ready: {int(valid.sum())} bathymetry cells, data radius {radius:.0f}")
        return BaseMap(drawables=drawables, crs=crs_str, radius=radius, bathy_palette=palette)
