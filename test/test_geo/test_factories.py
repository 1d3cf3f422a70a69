"""Tests for the geometry configurations, factory and singleton manager."""

import pytest

from wiregeo.geo import GeoManager, GeometryCore, geo_factory
from wiregeo.geo.factories import GEO_CONFIG_DIR, _match_version, geo_dict


class TestGeoDict:
    """Test the listing of the available geometry configurations."""

    def test_available(self):
        """Test that all the shipped configurations are listed."""
        options = geo_dict()
        assert len(options) == 3
        assert all(path.parent.parent == GEO_CONFIG_DIR for path in options)

        entries = {cfg["tag"]: cfg for cfg in options.values()}
        assert entries["toy_v1"] == {"name": "toy", "tag": "toy_v1", "version": "1.0"}
        assert entries["toy_v2"] == {"name": "toy", "tag": "toy_v2", "version": "2.1"}
        assert entries["toy2x_v1"]["name"] == "toy2x"

    @pytest.mark.parametrize(
        "requested, available, expected",
        [("1", "1.0", True), ("2", "2.1", True), ("2.1", "2.1", True),
         ("2.0", "2.1", False), ("3", "2.1", False)],
    )  # fmt: skip
    def test_match_version(self, requested, available, expected):
        """Test the matching of major and minor revisions."""
        assert _match_version(requested, available) == expected


class TestGeoFactory:
    """Test the instantiation of geometry cores from a detector name."""

    def test_latest(self):
        """Test that the most recent version is picked by default."""
        geo = geo_factory("toy")
        assert isinstance(geo, GeometryCore)
        assert geo.tag == "toy_v2"
        assert geo.position_epsilon == pytest.approx(1e-3)
        assert not geo.is_loaded

    def test_case_insensitive(self):
        """Test that the detector name is not case sensitive."""
        assert geo_factory("TOY2X").name == "toy2x"

    def test_by_tag(self):
        """Test the selection of a configuration by tag."""
        geo = geo_factory("toy", tag="toy_v1")
        assert geo.tag == "toy_v1"
        assert geo.position_epsilon == pytest.approx(1e-4)

        geo = geo_factory("toy", tag="toy_v1", version="1")
        assert geo.tag == "toy_v1"

    @pytest.mark.parametrize(
        "version, tag", [("1", "toy_v1"), (2, "toy_v2"), ("2.1", "toy_v2")]
    )
    def test_by_version(self, version, tag):
        """Test the selection of a configuration by version."""
        assert geo_factory("toy", version=version).tag == tag

    def test_configuration(self):
        """Test that the configuration parameters are forwarded."""
        geo = geo_factory("toy2x")
        assert geo.surface_y == pytest.approx(200.0)
        assert geo.min_wire_z_dist == pytest.approx(3.0)
        assert geo.builder_cfg["opdet_name"] == "volPMT"

    def test_load(self, toy_tree):
        """Test that a factory-made geometry can be loaded."""
        geo = geo_factory("toy", tag="toy_v1")
        geo.load_geometry(toy_tree)
        assert geo.num_op_dets == 4
        assert geo.num_channels() == 300

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"detector": "nope"},
            {"detector": "toy", "tag": "toy_v9"},
            {"detector": "toy", "tag": "toy_v1", "version": "2"},
            {"detector": "toy", "version": "3"},
        ],
    )
    def test_not_found(self, kwargs):
        """Test that unknown configurations are rejected."""
        with pytest.raises(ValueError):
            geo_factory(**kwargs)


@pytest.mark.usefixtures("reset_manager")
class TestGeoManager:
    """Test the geometry singleton."""

    def test_initialize(self):
        """Test the initialization of the singleton."""
        assert not GeoManager.is_initialized()
        assert GeoManager.get_instance_if_initialized() is None

        geo = GeoManager.initialize("toy", tag="toy_v1")
        assert GeoManager.is_initialized()
        assert GeoManager.get_instance() is geo

        with pytest.raises(ValueError, match="GeoManager.reset"):
            GeoManager.initialize("toy")

    def test_get_uninitialized(self):
        """Test that accessing a missing singleton explains how to fix it."""
        with pytest.raises(ValueError, match="GeoManager.initialize"):
            GeoManager.get_instance()

    def test_initialize_or_get(self):
        """Test that the instance is only replaced when it does not match."""
        geo = GeoManager.initialize_or_get("toy")
        assert GeoManager.initialize_or_get("Toy") is geo
        assert GeoManager.initialize_or_get("toy", tag="toy_v2") is geo

        other = GeoManager.initialize_or_get("toy", tag="toy_v1")
        assert other is not geo
        assert other.tag == "toy_v1"

        other = GeoManager.initialize_or_get("toy2x")
        assert other.name == "toy2x"
        assert GeoManager.get_instance() is other

    def test_reset(self, toy_tree):
        """Test that resetting drops the loaded geometry."""
        geo = GeoManager.initialize("toy", tag="toy_v1")
        geo.load_geometry(toy_tree)
        assert geo.is_loaded

        GeoManager.reset()
        assert not geo.is_loaded
        assert not GeoManager.is_initialized()
