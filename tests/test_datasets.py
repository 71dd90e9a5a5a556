import pytest

from distant_datasets    import DatasetKey, LAYER_POLICIES, get_policy, parse_key
from distant_errors      import LayerNotFoundError
from distant_layers      import BoundingBox


class TestDatasetKey:
    def test_has_exactly_4_values(self):
        assert len(DatasetKey) == 4

    def test_every_key_has_a_policy(self):
        assert set(LAYER_POLICIES) == set(DatasetKey)

    def test_parse_accepts_strings(self):
        assert parse_key("freer") is DatasetKey.FREER
        assert parse_key(DatasetKey.HINDELL) is DatasetKey.HINDELL

    def test_unknown_key(self):
        with pytest.raises(LayerNotFoundError, match="nope"):
            parse_key("nope")

    def test_unknown_key_is_a_key_error(self):
        with pytest.raises(KeyError):
            get_policy("nope")


class TestLayerPolicies:
    def test_only_fabri_ruiz_is_categorical_with_background(self):
        flagged = {k for k, p in LAYER_POLICIES.items() if p.categorical or p.background}
        assert flagged == {DatasetKey.FABRI_RUIZ}

    def test_crop_boxes(self):
        assert get_policy("hindell").bbox == BoundingBox(-180, 180, -80, -45)
        assert get_policy("freer").bbox == BoundingBox(-180, 180, -75, -45)
        assert get_policy("pinkerton").bbox is None

    def test_pinkerton_uses_latitude_filter(self):
        assert get_policy("pinkerton").max_latitude == -45.0
        assert get_policy("pinkerton").palette.title == "Primary\nproductivity\nmgC/m^2/day"

    def test_legend_titles(self):
        assert get_policy("hindell").palette.title == "Habitat\nimportance"
        assert get_policy("freer").palette.title == "Habitat\nsuitability"

    def test_bounding_box_is_inclusive(self):
        bbox = BoundingBox(-180, 180, -80, -45)
        assert bbox.contains(0.0, -45.0)
        assert bbox.contains(180.0, -80.0)
        assert not bbox.contains(0.0, -44.99)
