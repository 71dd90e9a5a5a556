import numpy             as np
import pytest

from distant_basemap     import DistantBaseMap
from distant_config      import load_config
from distant_errors      import BaseMapError
from distant_palettes    import sample_colormap


class TestValidateCrs:
    def test_accepts_south_polar_stereographic(self, base_config):
        assert DistantBaseMap(base_config).validate_crs().to_epsg() == 3031

    @pytest.mark.parametrize("crs", ["EPSG:4326", "EPSG:3857", "not a crs"])
    def test_rejects_other_projections(self, crs):
        with pytest.raises(BaseMapError):
            DistantBaseMap(load_config(target_crs=crs)).validate_crs()


class TestBuildBaseMap:
    def test_drawable_order(self, base_map):
        assert base_map.names() == ["init", "bathymetry", "coastline", "ice", "graticule", "border"]
        assert base_map.crs == "EPSG:3031"

    def test_radius_inside_trim_circle(self, base_config, base_map):
        r_trim = DistantBaseMap(base_config).latitude_radius(base_config.trim)
        assert 0.8 * r_trim < base_map.radius <= r_trim

    def test_bathymetry_masks_land_and_outside_trim(self, base_config, base_map):
        cells  = base_map.get("bathymetry").data
        valid  = cells["depth"].notna()
        r      = np.hypot(cells["x"], cells["y"])
        r_trim = DistantBaseMap(base_config).latitude_radius(base_config.trim)
        assert (cells.loc[valid, "depth"] < 0).all()
        assert (r[valid] <= r_trim).all()
        assert not valid[r < 8.0e5].any()

    def test_palette_deepest_first(self, base_config, base_map):
        palette = sample_colormap("deep", base_config.bathy_n_colors)
        assert len(base_map.bathy_palette) == 52
        assert base_map.deepest_color == palette[-1]

    def test_coastline_split_by_poly_type(self, base_map):
        coast = base_map.get("coastline")
        ice   = base_map.get("ice")
        assert (coast.data["POLY_TYPE"] != "S").all()
        assert (ice.data["POLY_TYPE"] == "S").all()
        assert len(ice.data) == 1
        assert coast.style["facecolor"] == "#CCCCCC"
        assert ice.style["facecolor"] == "#FFFFFF"

    def test_extent_covers_border(self, base_config, base_map):
        extent = base_map.get("init").data
        r_out  = DistantBaseMap(base_config).latitude_radius(base_config.trim + base_config.border_width)
        assert extent["x"].max() == pytest.approx(r_out)
        assert extent["y"].min() == pytest.approx(-r_out)

    def test_border_alternates(self, base_map):
        fills = base_map.get("border").data["fill"].tolist()
        assert len(fills) == 24
        assert fills[:4] == ["#000000", "#FFFFFF", "#000000", "#FFFFFF"]

    def test_graticule_groups(self, base_map):
        groups = set(base_map.get("graticule").data["group"])
        assert {"lon0", "lon-180", "lat-45", "lat-60", "lat-75"} <= groups

    def test_land_only_bathymetry_is_fatal(self, base_config, synthetic_coastline, synthetic_bathymetry):
        land = synthetic_bathymetry.copy(data=np.abs(synthetic_bathymetry.values))
        with pytest.raises(BaseMapError, match="no valid bathymetry"):
            DistantBaseMap(base_config).build_base_map(coastline=synthetic_coastline, bathy=land)

    def test_missing_sources_are_fatal(self, config):
        with pytest.raises(BaseMapError, match="coastline"):
            DistantBaseMap(config).build_base_map()

    def test_missing_bathymetry_is_fatal(self, config, synthetic_coastline):
        with pytest.raises(BaseMapError, match="bathymetry"):
            DistantBaseMap(config).build_base_map(coastline=synthetic_coastline)


class TestPrepareBathymetry:
    def test_coarsens_to_resolution(self, config, synthetic_bathymetry, tmp_path):
        P_bed = tmp_path / "bed.tif"
        synthetic_bathymetry.rio.to_raster(P_bed)
        P_out = DistantBaseMap(config).prepare_bathymetry(P_bed, tmp_path / "out" / "bath.tif")
        bathy = DistantBaseMap(config).load_bathymetry(P_out)
        assert abs(bathy.rio.resolution()[0]) == pytest.approx(config.bathy_resolution)
        assert float(np.nanmax(bathy.values)) < 0
