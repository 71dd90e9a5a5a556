import logging
import numpy             as np
import pandas            as pd
from distant_config      import LOGGER_NAME
from distant_layers      import Drawable, StyledMapLayer, Theme, compose_drawables

__all__ = ["DistantStylist"]

class DistantStylist:
    """
    Overlay tabulated dataset cells on the base map and give the result a uniform look.

    `style()` never modifies the base map: it composes a new drawable tuple in
    which the dataset cells take the bathymetry slot and, for policies that ask
    for it, an open-ocean circle sits directly above ``init``. `normalize()`
    must run last so the uniform theme overrides anything set while styling.

    Parameters
    ----------
    config : DistantConfig
    logger : logging.Logger, optional
    """

    def __init__(self, config, logger=None):
        self.config = config
        self.logger = logger if logger is not None else logging.getLogger(LOGGER_NAME)

    def background_circle(self, base):
        """Filled circle of the base map's data radius in its deepest bathymetry colour."""
        theta = np.linspace(0, 2 * np.pi, self.config.background_n_vertices)
        df    = pd.DataFrame({"x": base.radius * np.cos(theta), "y": base.radius * np.sin(theta)})
        return Drawable("background", "polygon", df, {"facecolor": base.deepest_color, "edgecolor": "none"})

    def data_drawable(self, cells, policy):
        value_name = policy.value_name
        if value_name not in cells.columns:
            if len(cells.columns) < 3:
                raise ValueError(f"cells for '{policy.key}' have no value column; got {list(cells.columns)}")
            cells = cells.rename(columns={cells.columns[2]: value_name})
        cells  = cells[["x", "y", value_name]].reset_index(drop=True)
        limits = policy.palette.data_limits(cells[value_name])
        return Drawable("data", "data", cells, {"value": value_name, "palette": policy.palette, "limits": limits})

    def style(self, cells, policy, base):
        """
        Build the styled layer for one dataset.

        Parameters
        ----------
        cells : pandas.DataFrame
            Tabulated cells ``x, y, <value>`` in the base map CRS; may be empty.
        policy : LayerPolicy
            Palette, legend title, value column and background flag of the dataset.
        base : BaseMap
            Read-only template.

        Returns
        -------
        StyledMapLayer
            Base drawables with the data drawable in the bathymetry slot, the
            optional background circle, and a legend built from the palette.
            Empty `cells` give an empty data drawable, never an error.
        """
        data = self.data_drawable(cells, policy)
        if policy.background:
            drawables = compose_drawables(base, replace_slot="bathymetry", replacement=data,
                                          insert_after="init", extra=self.background_circle(base))
        else:
            drawables = compose_drawables(base, replace_slot="bathymetry", replacement=data)
        legend = policy.palette.legend(data.style["limits"])
        n_data = int(data.data[policy.value_name].notna().sum())
        if n_data == 0:
            self.logger.warning(f"{policy.key}: no data cells to draw; layer will show the base map only")
        self.logger.info(f"{policy.key}: styled {len(data.data)} cells ({n_data} with data), "
                         f"drawables {[d.name for d in drawables]}")
        return StyledMapLayer(key       = str(policy.key),
                              title     = policy.title,
                              drawables = drawables,
                              legend    = legend,
                              theme     = Theme(),
                              crs       = base.crs)

    def theme(self):
        return Theme(base_size       = self.config.base_size,
                     font_family     = self.config.font_family,
                     legend_position = "bottom",
                     void            = True)

    def normalize(self, layer):
        """Strip chrome, impose the configured font and move the legend to the bottom."""
        return layer.with_theme(self.theme())

    @staticmethod
    def fill_table(layer):
        """Cells of the layer's data drawable with the fill colour each one is drawn with."""
        data         = layer.primary_data()
        palette      = data.style["palette"]
        df           = data.data.copy()
        df["fill"]   = palette.resolve(df[data.style["value"]], data.style.get("limits"))
        return df
