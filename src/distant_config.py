import json, logging
from dataclasses import dataclass, fields, replace
from pathlib     import Path

__all__ = ["DistantConfig", "load_config", "setup_logging", "LOGGER_NAME"]

LOGGER_NAME = "distant"

@dataclass(frozen=True)
class DistantConfig:
    """
    Immutable settings for the DISTANT layer pipeline and display shell.

    One instance is created per run by `load_config()` and handed to every
    component constructor. Attribute names follow the `D_` (directory) and `P_`
    (file path) prefixes used throughout the code base.

    Attributes
    ----------
    D_local_data : str
        Local mirror of the remote object store.
    D_output : str
        Directory holding one `plot_<key>.pkl` cache entry per dataset.
    D_logs : str
        Directory for pipeline log files.
    remote_repo : str
        Object store prefix, e.g. ``"s3://scar/distant/"``.
    endpoint_url : str
        S3-compatible endpoint serving `remote_repo`.
    remote_anon : bool
        Use anonymous (unsigned) requests against the endpoint.
    data_base_url : str
        HTTP prefix used to read a raster directly when no local copy exists.
    target_crs : str
        Polar stereographic CRS shared by the base map and every layer.
    trim : float
        Northern latitude limit of the circumpolar map (degrees, negative).
    border_width : float
        Width of the black/white latitude border ring (degrees).
    base_size : float
        Base font size applied by the theme normaliser.
    font_family : str
        Font family applied by the theme normaliser.
    P_coast_shape : str
        Coastline shapefile; polygons with ``POLY_TYPE == 'S'`` are ice shelves.
    P_IBCSO_bath : str
        Bathymetry grid (NetCDF or GeoTIFF, negative depths below sea level).
    bathy_resolution : float
        Cell size (target CRS units) the bathymetry is resampled to.
    bathy_cmap : str
        cmocean colormap sampled for the bathymetry palette.
    bathy_n_colors : int
        Number of bathymetry palette bins.
    coast_fill, ice_fill : str
        Flat fills forced onto the coastline and ice shelf layers.
    graticule_lon_step, graticule_lat_step : float
        Graticule spacing (degrees).
    background_n_vertices : int
        Vertices of the open-ocean background circle.
    fig_width, fig_height : float
        Exported figure size (inches).
    dpi : int
        Exported figure resolution.
    write_empty_layers : bool
        Persist layers with no finite data cells instead of reporting them as failed.
    log_level : str
        Name of the logging level.
    """
    D_local_data          : str   = "data_shiny_source_coop"
    D_output              : str   = "processed_data"
    D_logs                : str   = "logs"
    remote_repo           : str   = "s3://scar/distant/"
    endpoint_url          : str   = "https://data.source.coop"
    remote_anon           : bool  = True
    data_base_url         : str   = "https://data.source.coop/scar/distant/"
    target_crs            : str   = "EPSG:3031"
    trim                  : float = -45.0
    border_width          : float = 0.25
    base_size             : float = 16
    font_family           : str   = "Roboto"
    P_coast_shape         : str   = "data_shiny_source_coop/basemap/add_coastline_medium_res_polygon.shp"
    P_IBCSO_bath          : str   = "data_shiny_source_coop/basemap/IBCSO_v2_bath.nc"
    bathy_resolution      : float = 25_000.0
    bathy_cmap            : str   = "deep"
    bathy_n_colors        : int   = 52
    coast_fill            : str   = "#CCCCCC"
    ice_fill              : str   = "#FFFFFF"
    graticule_lon_step    : float = 30.0
    graticule_lat_step    : float = 15.0
    background_n_vertices : int   = 300
    fig_width             : float = 10.0
    fig_height            : float = 8.0
    dpi                   : int   = 300
    write_empty_layers    : bool  = False
    log_level             : str   = "INFO"

    def __post_init__(self):
        if not -90.0 < self.trim < 0.0:
            raise ValueError(f"trim must be a southern latitude in (-90, 0); got {self.trim}")
        if self.border_width < 0:
            raise ValueError(f"border_width must be non-negative; got {self.border_width}")
        if self.bathy_n_colors < 2:
            raise ValueError(f"bathy_n_colors must be at least 2; got {self.bathy_n_colors}")

    def summary(self, logger):
        logger.info("--- DISTANT configuration ---")
        logger.info(f"Local data directory : {self.D_local_data}")
        logger.info(f"Output directory     : {self.D_output}")
        logger.info(f"Remote repository    : {self.remote_repo} @ {self.endpoint_url}")
        logger.info(f"Target CRS           : {self.target_crs}")
        logger.info(f"Trim latitude        : {self.trim}")
        logger.info(f"Theme                : {self.base_size}pt {self.font_family}")
        logger.info("-----------------------------")

def load_config(P_json=None, **overrides):
    """
    Build a `DistantConfig` from an optional JSON file plus keyword overrides.

    Parameters
    ----------
    P_json : str or pathlib.Path, optional
        JSON file with any subset of the `DistantConfig` fields. Keys beginning
        with an underscore are treated as comments and ignored.
    **overrides
        Field values taking precedence over the JSON file.

    Returns
    -------
    DistantConfig

    Raises
    ------
    ValueError
        If the JSON file or the overrides name an unknown field.
    """
    valid  = {f.name for f in fields(DistantConfig)}
    values = {}
    if P_json is not None:
        with open(P_json, "r") as f:
            values.update({k: v for k, v in json.load(f).items() if not k.startswith("_")})
    values.update(overrides)
    unknown = sorted(set(values) - valid)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {unknown}")
    return replace(DistantConfig(), **values)

def setup_logging(P_log=None, log_level=logging.INFO):
    """Attach stream (and optionally file) handlers to the shared 'distant' logger."""
    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper())
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    # === Remove any old file handlers pointing to other files ===
    if P_log:
        for h in list(logger.handlers):
            if isinstance(h, logging.FileHandler):
                logger.removeHandler(h)
                h.close()
    # === Add stream handler if none exists ===
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(formatter)
        ch.setLevel(log_level)
        logger.addHandler(ch)
    # === Add (new) file handler ===
    if P_log:
        Path(P_log).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(P_log, mode='a')
        fh.setFormatter(formatter)
        fh.setLevel(log_level)
        logger.addHandler(fh)
        logger.info(f"log file connected: {P_log}")
    return logger
