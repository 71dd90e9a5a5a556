import io, logging
from dataclasses         import dataclass
from pathlib             import Path
from typing              import Optional
from distant_cache       import DistantLayerCache
from distant_config      import LOGGER_NAME
from distant_datasets    import LAYER_POLICIES, parse_key
from distant_errors      import LayerCacheError, LayerNotFoundError
from distant_layers      import StyledMapLayer
from distant_plotter     import DistantPlotter
from distant_stylist     import DistantStylist

__all__ = ["DisplayState", "DistantDisplay", "UNAVAILABLE_MESSAGE"]

UNAVAILABLE_MESSAGE = "Map not available. Run the preprocessing pipeline to create it."

@dataclass(frozen=True, eq=False)
class DisplayState:
    """What the display shell shows for one selection."""
    key            : str
    title          : str
    layer          : Optional[StyledMapLayer] = None
    message        : Optional[str]            = None
    show_coastline : bool                     = True
    show_ccamlr    : bool                     = False

    @property
    def available(self):
        return self.layer is not None

class DistantDisplay:
    """
    Read-only front end over the layer cache.

    Every call reads the cache entry afresh and never writes to it, so any
    number of sessions may use one instance (or one each) concurrently.

    Parameters
    ----------
    config : DistantConfig
    logger : logging.Logger, optional
    cache : DistantLayerCache, optional
    plotter : DistantPlotter, optional
    """

    def __init__(self, config, logger=None, cache=None, plotter=None):
        self.config  = config
        self.logger  = logger  if logger  is not None else logging.getLogger(LOGGER_NAME)
        self.cache   = cache   if cache   is not None else DistantLayerCache(config, logger=self.logger)
        self.plotter = plotter if plotter is not None else DistantPlotter(config, logger=self.logger)

    @staticmethod
    def choices():
        """Selector entries as ``{title: key}`` in dataset order."""
        return {p.title: k.value for k, p in LAYER_POLICIES.items()}

    def show(self, key, show_coastline=True, show_ccamlr=False):
        """
        Load the cached layer of `key` for display.

        `show_coastline` and `show_ccamlr` are recorded on the returned state
        but do not change the layer: the cached map is shown exactly as it was
        preprocessed.

        Returns
        -------
        DisplayState
            With `layer` set, or with a "not available" `message` when no
            readable cache entry exists. Unknown keys still raise
            `LayerNotFoundError`.
        """
        key   = parse_key(key)
        title = LAYER_POLICIES[key].title
        try:
            layer = self.cache.load(key)
        except (LayerNotFoundError, LayerCacheError) as e:
            self.logger.warning(f"{key.value}: {e}")
            return DisplayState(key=key.value, title=title, message=UNAVAILABLE_MESSAGE,
                                show_coastline=show_coastline, show_ccamlr=show_ccamlr)
        return DisplayState(key=key.value, title=title, layer=layer,
                            show_coastline=show_coastline, show_ccamlr=show_ccamlr)

    def render(self, state):
        """
        Figure, PNG bytes and fill table of an available `state`.

        Everything is derived from ``state.layer``: the cache is not read again
        and the layer is drawn once.
        """
        fig   = self.plotter.render_layer(state.layer)
        buf   = io.BytesIO()
        fig.savefig(buf, format="png", dpi=self.config.dpi)
        table = DistantStylist.fill_table(state.layer)
        return fig, buf.getvalue(), table

    def figure(self, key):
        return self.plotter.render_layer(self.cache.load(key))

    @staticmethod
    def png_name(key):
        return f"{parse_key(key).value}_plot.png"

    @staticmethod
    def csv_name(key):
        return f"{parse_key(key).value}_data.csv"

    def export_png(self, key, P_png=None):
        """Write the rendered layer at ``fig_width x fig_height`` inches and `dpi`."""
        P_png = Path(P_png) if P_png is not None else Path(self.png_name(key))
        fig   = self.figure(key)
        fig.savefig(P_png, dpi=self.config.dpi)
        self.logger.info(f"saved figure to {P_png}")
        return P_png

    def data_table(self, key):
        """Cells of the primary data drawable with the fill each one is drawn with."""
        return DistantStylist.fill_table(self.cache.load(key))

    def export_csv(self, key, P_csv=None):
        P_csv = Path(P_csv) if P_csv is not None else Path(self.csv_name(key))
        self.data_table(key).to_csv(P_csv, index=False)
        self.logger.info(f"saved data table to {P_csv}")
        return P_csv

    def preview_table(self, key, n=10):
        return self.data_table(key).head(n)
