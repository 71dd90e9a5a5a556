"""
Shared fixtures: synthetic rasters, coastline and bathymetry in place of the
remote DISTANT datasets, so no test needs network access.
"""
import numpy             as np
import pandas            as pd
import geopandas         as gpd
import xarray            as xr
import rioxarray  # noqa: F401  registers the .rio accessor
import pytest
from shapely.geometry    import Point, box

from distant_config      import load_config
from distant_basemap     import DistantBaseMap
from distant_datasets    import LAYER_POLICIES


def make_geo_raster(values, x, y, crs, name="value"):
    """Wrap a (y, x) array in a DataArray carrying a CRS, NaN no-data and a transform."""
    da = xr.DataArray(np.asarray(values, dtype="float64"), dims=("y", "x"),
                      coords={"y": np.asarray(y, dtype="float64"), "x": np.asarray(x, dtype="float64")},
                      name=name)
    return da.rio.write_crs(crs).rio.write_nodata(np.nan)


def lonlat_grid(step=5.0, lat_max=-30.0):
    """Cell centres of a global geographic grid south of `lat_max`, north-up."""
    lon = np.arange(-180.0 + step / 2, 180.0, step)
    lat = np.arange(lat_max - step / 2, -90.0, -step)
    return lon, lat


@pytest.fixture
def continuous_raster():
    """EPSG:4326 raster whose value is the absolute latitude of each cell."""
    lon, lat = lonlat_grid()
    values   = np.repeat(np.abs(lat)[:, None], lon.size, axis=1)
    return make_geo_raster(values, lon, lat, "EPSG:4326")


@pytest.fixture
def categorical_raster():
    """EPSG:4326 raster of bioregion indices 1..12 cycling with longitude; one row is no-data."""
    lon, lat = lonlat_grid()
    values   = np.tile((np.arange(lon.size) % 12 + 1).astype(float), (lat.size, 1))
    values[0, :] = np.nan
    return make_geo_raster(values, lon, lat, "EPSG:4326")


def write_geotiff(da, P_tif):
    P_tif.parent.mkdir(parents=True, exist_ok=True)
    da.rio.to_raster(P_tif)
    return P_tif


@pytest.fixture
def config(tmp_path):
    return load_config(D_local_data          = str(tmp_path / "data"),
                       D_output              = str(tmp_path / "processed_data"),
                       D_logs                = str(tmp_path / "logs"),
                       P_coast_shape         = str(tmp_path / "data" / "coast.shp"),
                       P_IBCSO_bath          = str(tmp_path / "data" / "bath.tif"),
                       bathy_resolution      = 200_000.0,
                       background_n_vertices = 60,
                       font_family           = "DejaVu Sans",
                       fig_width             = 4.0,
                       fig_height            = 3.0,
                       dpi                   = 40)


@pytest.fixture(scope="session")
def synthetic_coastline():
    """Round continent (land) with a rectangular ice shelf on its edge, EPSG:3031."""
    land  = Point(0, 0).buffer(1.5e6, 64)
    shelf = box(1.4e6, -3.0e5, 2.0e6, 3.0e5)
    return gpd.GeoDataFrame({"POLY_TYPE": ["L", "S"]}, geometry=[land, shelf], crs="EPSG:3031")


@pytest.fixture(scope="session")
def synthetic_bathymetry():
    """EPSG:3031 depth grid: land (positive) inside 1000 km of the pole, deepening offshore."""
    x      = np.arange(-5.5e6, 5.5e6 + 1, 1.0e5)
    y      = x[::-1]
    X, Y   = np.meshgrid(x, y)
    r      = np.hypot(X, Y)
    depth  = np.where(r < 1.0e6, 500.0, -1000.0 - r / 2000.0)
    return make_geo_raster(depth, x, y, "EPSG:3031", name="depth")


@pytest.fixture(scope="session")
def base_config(tmp_path_factory):
    D = tmp_path_factory.mktemp("base")
    return load_config(D_local_data     = str(D / "data"),
                       D_output         = str(D / "out"),
                       bathy_resolution = 200_000.0,
                       font_family      = "DejaVu Sans")


@pytest.fixture(scope="session")
def base_map(base_config, synthetic_coastline, synthetic_bathymetry):
    return DistantBaseMap(base_config).build_base_map(coastline=synthetic_coastline,
                                                      bathy=synthetic_bathymetry)


def empty_cells(key):
    return pd.DataFrame({"x": pd.Series(dtype="float64"),
                         "y": pd.Series(dtype="float64"),
                         LAYER_POLICIES[key].value_name: pd.Series(dtype="float64")})


def polar_cells(value_name, values):
    """A short row of cells along the x axis of EPSG:3031 carrying `values`."""
    n = len(values)
    return pd.DataFrame({"x": np.linspace(2.0e6, 4.0e6, n), "y": np.zeros(n), value_name: values})
