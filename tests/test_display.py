import threading
import matplotlib        as mpl
import numpy             as np
import pandas            as pd
import pytest
from matplotlib.collections import PatchCollection
from matplotlib.colors   import to_rgba
from matplotlib.figure   import Figure
from shapely.geometry    import LineString, MultiPolygon, Polygon, box

from conftest            import polar_cells
from distant_cache       import DistantLayerCache
from distant_datasets    import DatasetKey, LAYER_POLICIES
from distant_display     import UNAVAILABLE_MESSAGE, DistantDisplay
from distant_errors      import LayerNotFoundError
from distant_layers      import Theme
from distant_plotter     import DistantPlotter
from distant_stylist     import DistantStylist


@pytest.fixture
def cached(config, base_map):
    """Cache entries for the bioregion and habitat suitability layers."""
    stylist = DistantStylist(config)
    cache   = DistantLayerCache(config)
    for key, values in ((DatasetKey.FABRI_RUIZ, [1, 3, None, 12]),
                        (DatasetKey.FREER     , [0.1, np.nan, 0.5, 0.9])):
        policy = LAYER_POLICIES[key]
        cache.save(key, stylist.normalize(stylist.style(polar_cells(policy.value_name, values), policy, base_map)))
    return cache


@pytest.fixture
def display(config):
    return DistantDisplay(config)


class TestShow:
    def test_selector_lists_four_titles(self, display):
        assert list(display.choices()) == ["Fabri-Ruiz Bioregions", "Hindell Habitat Importance",
                                           "Pinkerton Primary Productivity", "Freer Habitat Suitability"]

    def test_available_layer(self, display, cached):
        state = display.show("fabri_ruiz")
        assert state.available
        assert state.title == "Fabri-Ruiz Bioregions"
        assert state.message is None

    def test_toggles_are_recorded_but_inert(self, display, cached):
        a = display.show("freer", show_coastline=True, show_ccamlr=False)
        b = display.show("freer", show_coastline=False, show_ccamlr=True)
        assert (b.show_coastline, b.show_ccamlr) == (False, True)
        assert a.layer.names() == b.layer.names()
        assert a.layer.primary_data().data.equals(b.layer.primary_data().data)

    def test_missing_entry_is_not_available(self, display, cached):
        state = display.show("pinkerton")
        assert not state.available
        assert state.message == UNAVAILABLE_MESSAGE

    def test_unknown_key(self, display):
        with pytest.raises(LayerNotFoundError):
            display.show("unknown")


class TestExport:
    def test_default_file_names(self):
        assert DistantDisplay.png_name("hindell") == "hindell_plot.png"
        assert DistantDisplay.csv_name(DatasetKey.FREER) == "freer_data.csv"

    def test_csv_holds_plotted_cells(self, display, cached, tmp_path):
        P_csv = display.export_csv("fabri_ruiz", tmp_path / "fabri_ruiz_data.csv")
        df    = pd.read_csv(P_csv, keep_default_na=False)
        assert list(df.columns) == ["x", "y", "bioregion", "fill"]
        assert df["fill"].tolist() == ["#2A5178", "#94FA8D", "#FFFFFF00", "#8869AC"]

    def test_png(self, display, cached, tmp_path):
        P_png = display.export_png("freer", tmp_path / "freer_plot.png")
        assert P_png.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_export_unavailable_layer(self, display, tmp_path):
        with pytest.raises(LayerNotFoundError):
            display.export_csv("hindell", tmp_path / "x.csv")

    def test_preview_table(self, display, cached):
        assert len(display.preview_table("freer", n=2)) == 2


class TestRender:
    class CountingPlotter(DistantPlotter):
        def __init__(self, config):
            super().__init__(config)
            self.calls = 0

        def render_layer(self, layer, fig_size=None, dpi=None):
            self.calls += 1
            return super().render_layer(layer, fig_size, dpi)

    def test_one_load_and_one_render_per_selection(self, config, cached, monkeypatch):
        display = DistantDisplay(config, cache=cached, plotter=self.CountingPlotter(config))
        loads   = []
        load    = cached.load
        monkeypatch.setattr(cached, "load", lambda key: loads.append(key) or load(key))
        state   = display.show("fabri_ruiz")
        fig, png, table = display.render(state)
        assert len(loads) == 1
        assert display.plotter.calls == 1
        assert isinstance(fig, Figure)
        assert png[:8] == b"\x89PNG\r\n\x1a\n"
        assert table["fill"].tolist() == ["#2A5178", "#94FA8D", "#FFFFFF00", "#8869AC"]


class TestPlotter:
    def test_render_uses_theme(self, config, cached):
        fig = DistantPlotter(config).render_layer(cached.load("freer"))
        assert isinstance(fig, Figure)
        ax = fig.axes[0]
        assert not ax.axison
        # horizontal colour bar below the map
        assert len(fig.axes) == 2

    def test_categorical_legend(self, config, cached):
        fig    = DistantPlotter(config).render_layer(cached.load("fabri_ruiz"))
        legend = fig.axes[0].get_legend()
        assert legend is not None
        assert len(legend.get_texts()) == 12

    def test_cells_to_image(self):
        rgba  = np.array([[1, 0, 0, 1], [0, 1, 0, 1], [0, 0, 1, 1]], dtype=float)
        image, extent = DistantPlotter.cells_to_image(np.array([0.0, 10.0, 0.0]), np.array([0.0, 0.0, 10.0]), rgba)
        assert image.shape == (2, 2, 4)
        assert extent == [-5.0, 15.0, -5.0, 15.0]
        np.testing.assert_array_equal(image[1, 1], [0, 0, 0, 0])
        np.testing.assert_array_equal(image[1, 0], [0, 0, 1, 1])

    def test_polygons_drawn_as_patches(self, config, cached):
        fig   = DistantPlotter(config).render_layer(cached.load("freer"))
        colls = [c for c in fig.axes[0].collections if isinstance(c, PatchCollection)]
        # coastline, ice shelf and the alternating border blocks
        assert len(colls) == 3
        border = colls[-1].get_facecolors()
        np.testing.assert_array_equal(border[0], to_rgba("#000000"))
        np.testing.assert_array_equal(border[1], to_rgba("#FFFFFF"))

    def test_polygon_paths_keep_holes(self):
        ring = Polygon([(0, 0), (4, 0), (4, 4), (0, 4)], holes=[[(1, 1), (2, 1), (2, 2)]])
        assert len(DistantPlotter.polygon_paths(ring)) == 1
        assert len(DistantPlotter.polygon_paths(MultiPolygon([ring, box(5, 5, 6, 6)]))) == 2
        assert DistantPlotter.polygon_paths(LineString([(0, 0), (1, 1)])) == []


class TestConcurrentRender:
    def test_themes_do_not_leak_between_threads(self, config, cached):
        layer   = cached.load("fabri_ruiz")
        plotter = DistantPlotter(config)
        before  = dict(mpl.rcParams)
        sizes   = [30, 40, 50, 60]
        figs    = {}
        barrier = threading.Barrier(len(sizes))

        def render(size):
            barrier.wait()
            figs[size] = plotter.render_layer(layer.with_theme(Theme(size, "DejaVu Sans", "bottom", True)))

        threads = [threading.Thread(target=render, args=(s,)) for s in sizes]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(figs) == sizes
        for size, fig in figs.items():
            legend = fig.axes[0].get_legend()
            assert legend.get_title().get_fontsize() == pytest.approx(size)
            assert legend.get_texts()[0].get_fontsize() < size
        assert mpl.rcParams["font.size"] == before["font.size"]
        assert mpl.rcParams["font.family"] == before["font.family"]
