from dataclasses       import dataclass
from enum              import Enum
from typing            import Optional
from distant_errors    import LayerNotFoundError
from distant_layers    import BoundingBox
from distant_palettes  import BIOREGION_TABLE, CategoricalPalette, ContinuousPalette

__all__ = ["DatasetKey", "LayerPolicy", "LAYER_POLICIES", "get_policy", "parse_key"]

class DatasetKey(str, Enum):
    FABRI_RUIZ = "fabri_ruiz"
    HINDELL    = "hindell"
    PINKERTON  = "pinkerton"
    FREER      = "freer"

    def __str__(self):
        return self.value

@dataclass(frozen=True)
class LayerPolicy:
    """
    Everything the pipeline needs to turn one dataset into a styled layer.

    Parameters
    ----------
    key : DatasetKey
        Dataset identifier, also the cache key.
    title : str
        Human-readable name shown by the display shell.
    source : str
        Raster path relative to the remote repository root.
    value_name : str
        Column name of the cell values in the tabulated data.
    palette : CategoricalPalette or ContinuousPalette
        Colour encoding and legend title.
    categorical : bool
        Cell values are 1-based category indices.
    bbox : BoundingBox, optional
        Geographic crop applied right after loading.
    max_latitude : float, optional
        Round-trip filter: keep cells whose back-projected latitude is strictly
        south of this value.
    background : bool
        Draw the open-ocean circle beneath the data.
    """
    key          : DatasetKey
    title        : str
    source       : str
    value_name   : str
    palette      : object
    categorical  : bool                  = False
    bbox         : Optional[BoundingBox] = None
    max_latitude : Optional[float]       = None
    background   : bool                  = False

LAYER_POLICIES = {
    DatasetKey.FABRI_RUIZ : LayerPolicy(key         = DatasetKey.FABRI_RUIZ,
                                        title       = "Fabri-Ruiz Bioregions",
                                        source      = "fabri-ruiz_et_al-2020/Fa2020-bioregions_cog.tif",
                                        value_name  = "bioregion",
                                        palette     = CategoricalPalette(BIOREGION_TABLE, "Benthic\nbioregion"),
                                        categorical = True,
                                        background  = True),
    DatasetKey.HINDELL    : LayerPolicy(key         = DatasetKey.HINDELL,
                                        title       = "Hindell Habitat Importance",
                                        source      = "hindell_et_al-2020/Hi2023-aes_colony_weighted_cog.tif",
                                        value_name  = "habitat_importance",
                                        palette     = ContinuousPalette.from_cmap("viridis", 51, "Habitat\nimportance"),
                                        bbox        = BoundingBox(-180, 180, -80, -45)),
    DatasetKey.PINKERTON  : LayerPolicy(key          = DatasetKey.PINKERTON,
                                        title        = "Pinkerton Primary Productivity",
                                        source       = "pinkerton_hayward-2021/Pi2021-annual_cog.tif",
                                        value_name   = "sea_ice_primary_productivity",
                                        palette      = ContinuousPalette.from_cmap("Greens", 51, "Primary\nproductivity\nmgC/m^2/day"),
                                        max_latitude = -45.0),
    DatasetKey.FREER      : LayerPolicy(key         = DatasetKey.FREER,
                                        title       = "Freer Habitat Suitability",
                                        source      = "freer_et_al-2019/Fr2019-Krefftichthys_anderssoni_cog.tif",
                                        value_name  = "habitat_suitability",
                                        palette     = ContinuousPalette.from_cmap("Spectral", 51, "Habitat\nsuitability", reverse=True),
                                        bbox        = BoundingBox(-180, 180, -75, -45)),
}

def parse_key(key):
    """Return the `DatasetKey` for `key`, raising `LayerNotFoundError` for anything else."""
    if isinstance(key, DatasetKey):
        return key
    try:
        return DatasetKey(str(key))
    except ValueError:
        valid = [k.value for k in DatasetKey]
        raise LayerNotFoundError(f"Unknown dataset key '{key}'. Valid keys are: {valid}") from None

def get_policy(key):
    return LAYER_POLICIES[parse_key(key)]
