"""Tests for the loading and the queries of the geometry core."""

import logging

import numpy as np
import pytest

from conftest import OPDET_Z, WIRE_PITCH
from wiregeo.geo import (
    INVALID_CHANNEL,
    GeometryCore,
    GeometryError,
    GeometryNotFoundError,
    InvalidInputError,
    View,
)
from wiregeo.geo.ids import (
    INVALID_INDEX,
    TPCID,
    CryostatID,
    PlaneID,
    WireID,
)


class TestLoading:
    """Test the loading protocol of the geometry."""

    def test_counts(self, geo):
        """Test the number of elements of the toy detector."""
        assert geo.is_loaded
        assert geo.num_cryostats == 1
        assert geo.num_tpcs() == 1
        assert geo.num_planes() == 3
        assert geo.num_wires() == 100
        assert geo.num_aux_dets == 2
        assert geo.num_aux_det_sensitive(0) == 2
        assert geo.num_op_dets == 4

    def test_maxima(self, geo2x):
        """Test the largest element counts."""
        assert geo2x.num_cryostats == 2
        assert geo2x.max_tpcs == 2
        assert geo2x.total_num_tpcs == 4
        assert geo2x.max_planes == 3
        assert geo2x.max_wires == 100
        assert geo2x.num_op_dets == 8

    def test_views(self, geo):
        """Test the set of views of the detector."""
        assert geo.views == {View.U, View.V, View.Z}
        assert geo.num_views == 3

    def test_missing_counts(self, geo):
        """Test that missing containers have no elements."""
        assert geo.num_tpcs(CryostatID(5)) == 0
        assert geo.num_planes(TPCID(0, 1)) == 0
        assert geo.num_wires(PlaneID(0, 0, 3)) == 0

    def test_clear(self, geo):
        """Test that clearing drops the whole model."""
        geo.clear()
        assert not geo.is_loaded
        assert geo.num_cryostats == 0
        assert geo.num_aux_dets == 0
        assert geo.num_op_dets == 0
        with pytest.raises(GeometryError):
            geo.num_channels()

    def test_reload(self, geo, toy_tree):
        """Test that loading again rebuilds the same model."""
        geo.load_geometry(toy_tree)
        assert geo.num_cryostats == 1
        assert geo.num_channels() == 300

    def test_no_root(self):
        """Test that a geometry cannot be loaded without a top node."""
        geo = GeometryCore("toy")
        with pytest.raises(InvalidInputError):
            geo.load_geometry(None)

    def test_info(self, geo):
        """Test the description of the geometry."""
        info = geo.info(verbosity=0)
        lines = info.split("\n")
        assert lines[0].startswith("Detector toy (tag: toy_v1, version: 1.0)")
        assert len(lines) == 8
        assert "cryostat C:0" in info
        assert "TPC C:0 T:0" in info
        assert "plane C:0 T:0 P:2" in info


class TestElementAccess:
    """Test the existence checks and the element getters."""

    def test_has(self, geo):
        """Test the existence checks."""
        assert geo.has_cryostat(CryostatID(0))
        assert not geo.has_cryostat(CryostatID(1))
        assert geo.has_tpc(TPCID(0, 0))
        assert not geo.has_tpc(TPCID(1, 0))
        assert geo.has_plane(PlaneID(0, 0, 2))
        assert not geo.has_plane(PlaneID(0, 0, 3))
        assert geo.has_wire(WireID(0, 0, 2, 99))
        assert not geo.has_wire(WireID(0, 0, 2, 100))
        assert geo.has_element(PlaneID(0, 0, 1))
        assert not geo.has_element(WireID(0, 0, 0, 100))

    def test_defaults(self, geo):
        """Test that the getters return the first element by default."""
        assert geo.cryostat().id == CryostatID(0)
        assert geo.tpc().id == TPCID(0, 0)
        assert geo.plane().id == PlaneID(0, 0, 0)

    def test_element(self, geo):
        """Test the generic element getter."""
        assert geo.element(TPCID(0, 0)) is geo.tpc()
        assert geo.element(WireID(0, 0, 1, 5)) is geo.wire(WireID(0, 0, 1, 5))

    @pytest.mark.parametrize(
        "element_id",
        [CryostatID(1), TPCID(0, 3), PlaneID(0, 0, 5), WireID(0, 0, 0, 100)],
    )
    def test_missing_element(self, geo, element_id):
        """Test that missing elements raise a lookup error."""
        with pytest.raises(GeometryNotFoundError):
            geo.element(element_id)
        with pytest.raises(LookupError):
            geo.element(element_id)

    def test_missing_aux_det(self, geo):
        """Test that missing auxiliary detectors raise."""
        with pytest.raises(GeometryNotFoundError):
            geo.aux_det(2)
        with pytest.raises(GeometryNotFoundError):
            geo.aux_det_sensitive(0, 2)

    def test_ids_match_position(self, geo2x):
        """Test that element IDs match their position in the model."""
        for c, cryo in enumerate(geo2x.cryostats):
            assert cryo.id == CryostatID(c)
            for t, tpc in enumerate(cryo.tpcs):
                assert tpc.id == TPCID(c, t)
                for p, plane in enumerate(tpc.planes):
                    assert plane.id == PlaneID(c, t, p)
                    for w, wire in enumerate(plane.wires):
                        assert wire.id == WireID(c, t, p, w)

    def test_sorted_cryostats(self, geo2x):
        """Test that cryostats are sorted by increasing x."""
        assert geo2x.cryostat(CryostatID(0)).center[0] == pytest.approx(-150.0)
        assert geo2x.cryostat(CryostatID(1)).center[0] == pytest.approx(150.0)
        assert geo2x.tpc(TPCID(0, 0)).center[0] == pytest.approx(-205.0)
        assert geo2x.tpc(TPCID(0, 1)).center[0] == pytest.approx(-95.0)

    def test_sorted_aux_dets(self, geo):
        """Test that auxiliary detectors are sorted by name."""
        assert geo.aux_det(0).name == "volAuxDetBottom"
        assert geo.aux_det(1).name == "volAuxDetTop"
        strips = geo.aux_det(1).sensitive
        assert strips[0].center[2] == pytest.approx(-25.0)
        assert strips[1].center[2] == pytest.approx(25.0)


class TestIteration:
    """Test the iteration over the geometry elements."""

    def test_planes(self, geo):
        """Test the plane IDs of the toy detector."""
        ids = geo.iterate_ids("plane")
        assert list(ids) == [PlaneID(0, 0, p) for p in range(3)]

    def test_restartable(self, geo):
        """Test that a sequence can be iterated several times."""
        ids = geo.iterate_ids("wire")
        assert len(ids) == 300
        assert list(ids) == list(ids)

    def test_elements(self, geo):
        """Test the iteration over the elements themselves."""
        wires = list(geo.iterate("wire", PlaneID(0, 0, 1)))
        assert len(wires) == 100
        assert wires[3] is geo.wire(WireID(0, 0, 1, 3))

    def test_restricted(self, geo2x):
        """Test that the iteration can be restricted to a container."""
        assert list(geo2x.iterate_ids("tpc", CryostatID(1))) == [
            TPCID(1, 0),
            TPCID(1, 1),
        ]
        assert len(geo2x.iterate_ids("plane", CryostatID(0))) == 6
        assert len(geo2x.iterate_ids("wire", PlaneID(1, 1, 2))) == 100
        assert len(geo2x.iterate_ids(TPCID)) == 4

    def test_order(self, geo2x):
        """Test that the identifiers come in increasing order."""
        ids = list(geo2x.iterate_ids("plane"))
        assert ids == sorted(ids)
        assert len(ids) == 12

    def test_invalid_kind(self, geo):
        """Test that unknown element kinds are rejected."""
        with pytest.raises(InvalidInputError):
            geo.iterate_ids("pmt")

    def test_begin_ids(self, geo2x):
        """Test the first identifiers of containers."""
        assert geo2x.get_begin_id("tpc") == TPCID(0, 0)
        assert geo2x.get_begin_tpc_id(CryostatID(1)) == TPCID(1, 0)
        assert geo2x.get_begin_plane_id(TPCID(0, 1)) == PlaneID(0, 1, 0)
        assert geo2x.get_begin_wire_id(PlaneID(1, 0, 2)) == WireID(1, 0, 2, 0)

    def test_end_ids(self, geo2x):
        """Test the identifiers following the last element of containers."""
        end = geo2x.get_end_id("tpc")
        assert end == TPCID(2, 0) and not end

        end = geo2x.get_end_tpc_id(CryostatID(0))
        assert end == TPCID(1, 0) and end

        end = geo2x.get_end_tpc_id(CryostatID(1))
        assert end == TPCID(2, 0) and not end

        assert geo2x.get_end_plane_id(TPCID(0, 1)) == PlaneID(1, 0, 0)
        assert geo2x.get_end_wire_id(PlaneID(0, 0, 2)) == WireID(0, 1, 0, 0)

    def test_deeper_parent(self, geo):
        """Test that a container cannot be deeper than its elements."""
        with pytest.raises(InvalidInputError):
            geo.get_begin_id("plane", WireID(0, 0, 0, 0))


class TestPositionLookup:
    """Test the lookup of the elements containing a point."""

    def test_tpc_at_position(self, geo):
        """Test the lookup of the TPC containing a point."""
        tpc_id = geo.find_tpc_at_position([0.0, 0.0, 0.0])
        assert tpc_id.is_valid
        assert tpc_id == TPCID(0, 0)
        assert geo.position_to_tpc([10.0, -20.0, 30.0]) is geo.tpc()
        assert geo.position_to_cryostat_id([0.0, 150.0, 0.0]) == CryostatID(0)

    def test_outside_tpcs(self, geo):
        """Test a point inside the cryostat but outside of all the TPCs."""
        tpc_id = geo.find_tpc_at_position([0.0, 150.0, 0.0])
        assert not tpc_id
        assert tpc_id.cryostat == 0
        assert tpc_id.tpc == INVALID_INDEX

        tpc_id = geo.position_to_tpc_id([0.0, 150.0, 0.0])
        assert not tpc_id
        assert tpc_id.cryostat == INVALID_INDEX

        with pytest.raises(GeometryNotFoundError):
            geo.position_to_tpc([0.0, 150.0, 0.0])

    def test_outside_cryostats(self, geo):
        """Test a point outside of all the cryostats."""
        point = [1000.0, 0.0, 0.0]
        assert geo.find_cryostat_at_position(point) is None
        assert not geo.position_to_cryostat_id(point)
        assert geo.find_tpc_at_position(point).cryostat == INVALID_INDEX
        with pytest.raises(GeometryNotFoundError):
            geo.position_to_cryostat(point)

    def test_wiggle(self, toy_tree):
        """Test that the containment checks are relaxed by the tolerance."""
        point = [50.0 * (1.0 + 0.5e-4), 0.0, 0.0]
        tolerant = GeometryCore("toy", position_epsilon=1e-4)
        tolerant.load_geometry(toy_tree)
        assert tolerant.find_tpc_at_position(point) == TPCID(0, 0)

        strict = GeometryCore("toy", position_epsilon=0.0)
        strict.load_geometry(toy_tree)
        tpc_id = strict.find_tpc_at_position(point)
        assert not tpc_id and tpc_id.cryostat == 0

    def test_multiple_cryostats(self, geo2x):
        """Test the lookups in the detector with two cryostats."""
        assert geo2x.find_tpc_at_position([-205.0, 0.0, 0.0]) == TPCID(0, 0)
        assert geo2x.find_tpc_at_position([205.0, 0.0, 0.0]) == TPCID(1, 1)

        tpc_id = geo2x.find_tpc_at_position([-150.0, 0.0, 0.0])
        assert not tpc_id and tpc_id.cryostat == 0

    def test_aux_det_at_position(self, geo):
        """Test the lookup of the auxiliary detectors."""
        assert geo.find_aux_det_at_position([0.0, 250.0, 10.0]) == 1
        assert geo.position_to_aux_det([0.0, -250.0, 0.0]) is geo.aux_det(0)
        assert geo.find_aux_det_sensitive_at_position([0.0, 250.0, 10.0]) == (1, 1)
        assert geo.find_aux_det_sensitive_at_position([0.0, 250.0, -10.0]) == (1, 0)

        strip = geo.position_to_aux_det_sensitive([0.0, 250.0, -10.0])
        assert strip is geo.aux_det_sensitive(1, 0)

    def test_aux_det_tolerance(self, geo):
        """Test that the tolerance grows the auxiliary detectors."""
        point = [0.0, 256.0, 10.0]
        with pytest.raises(GeometryNotFoundError):
            geo.find_aux_det_at_position(point)

        assert geo.find_aux_det_at_position(point, tolerance=1.0) == 1
        assert geo.find_aux_det_sensitive_at_position(point, 1.0) == (1, 1)


class TestDetectorProperties:
    """Test the geometry-wide TPC and plane properties."""

    def test_plane_pitch(self, geo):
        """Test the distance between planes."""
        assert geo.plane_pitch() == pytest.approx(0.3)
        assert geo.plane_pitch(TPCID(0, 0), 0, 2) == pytest.approx(0.6)
        assert geo.plane_pitch(PlaneID(0, 0, 1), PlaneID(0, 0, 2)) == pytest.approx(
            0.3
        )

    def test_plane_pitch_different_tpcs(self, geo2x):
        """Test that planes of different TPCs have no pitch."""
        with pytest.raises(InvalidInputError):
            geo2x.plane_pitch(PlaneID(0, 0, 0), PlaneID(0, 1, 0))

    def test_plane_pitch_single_plane(self, geo):
        """Test that a plane ID alone does not define a pitch."""
        with pytest.raises(InvalidInputError):
            geo.plane_pitch(PlaneID(0, 0, 1))
        with pytest.raises(InvalidInputError):
            geo.plane_pitch(PlaneID(0, 0, 1), 2)

    def test_wire_pitch(self, geo):
        """Test the wire pitch, by plane or by view."""
        assert geo.wire_pitch() == pytest.approx(WIRE_PITCH)
        assert geo.wire_pitch(PlaneID(0, 0, 2)) == pytest.approx(WIRE_PITCH)
        assert geo.wire_pitch(View.V) == pytest.approx(WIRE_PITCH)

    def test_wire_angle_to_vertical(self, geo):
        """Test the angle of the wires of a view."""
        assert geo.wire_angle_to_vertical(View.U) == pytest.approx(np.pi / 6)
        assert geo.wire_angle_to_vertical(View.Z) == pytest.approx(np.pi / 2)
        with pytest.raises(GeometryNotFoundError):
            geo.wire_angle_to_vertical(View.Y)

    def test_dimensions(self, geo):
        """Test the dimensions of the active volume and of the cryostat."""
        assert geo.det_half_width() == pytest.approx(47.0)
        assert geo.det_half_height() == pytest.approx(100.0)
        assert geo.det_length() == pytest.approx(200.0)
        assert geo.cryostat_half_width() == pytest.approx(200.0)
        assert geo.cryostat_half_height() == pytest.approx(200.0)
        assert geo.cryostat_length() == pytest.approx(400.0)

    def test_volume_names(self, geo):
        """Test the names of the TPC and cryostat volumes."""
        assert geo.get_lar_tpc_volume_name() == "volTPC"
        assert geo.get_cryostat_volume_name() == "volCryostat"
        assert geo.op_det_geo_name() == "volOpDetSensitive"


class TestWireQueries:
    """Test the wire end points and nearest wire queries."""

    def test_end_points_ordering(self, geo):
        """Test that the end point has the larger z (or y if vertical)."""
        for plane_id in geo.iterate_ids("plane"):
            start, end = geo.wire_end_points(WireID(plane_id, 10))
            if plane_id.plane < 2:
                assert end[2] > start[2]
            else:
                assert end[2] == pytest.approx(start[2])
                assert end[1] > start[1]

    def test_end_points_length(self, geo):
        """Test that the end points span the wire."""
        wire_id = WireID(0, 0, 0, 42)
        start, end = geo.wire_end_points(wire_id)
        wire = geo.wire(wire_id)
        assert np.linalg.norm(end - start) == pytest.approx(wire.length)
        np.testing.assert_allclose((start + end) / 2.0, wire.center)

    def test_wire_coordinate(self, geo):
        """Test the wire coordinate of a wire center."""
        pid = PlaneID(0, 0, 2)
        center = geo.wire(WireID(pid, 25)).center
        assert geo.wire_coordinate(center, pid) == pytest.approx(25.0)
        assert geo.nearest_wire_id(center, pid) == WireID(pid, 25)

    def test_nearest_channel(self, geo):
        """Test the channel of the nearest wire."""
        pid = PlaneID(0, 0, 2)
        center = geo.wire(WireID(pid, 10)).center
        assert geo.nearest_channel(center, pid) == 210

    def test_nearest_channel_outside(self, geo, caplog):
        """Test that points beyond the last wire have no channel."""
        pid = PlaneID(0, 0, 0)
        plane = geo.plane(pid)
        step = WIRE_PITCH * plane.increasing_wire_direction
        point = plane.last_wire.center + 5 * step
        with caplog.at_level(logging.WARNING, logger="wiregeo"):
            assert geo.nearest_channel(point, pid) == INVALID_CHANNEL
        assert "outside of plane" in caplog.text


class TestWorld:
    """Test the world volume, materials and masses."""

    def test_volume_name(self, geo):
        """Test the name of the deepest volume containing a point."""
        assert geo.volume_name([0.0, 0.0, 0.0]) == "volTPCActive"
        assert geo.volume_name([0.0, 0.0, 250.0]) == "volDetEnclosure"
        assert geo.volume_name([0.0, 250.0, 10.0]) == "volAuxDetSensitiveTop"
        assert geo.volume_name([1000.0, 0.0, 0.0]) == "unknownVolume"

    def test_material(self, geo):
        """Test the material at a point."""
        assert geo.material_name([0.0, 0.0, 0.0]) == "LAr"
        assert geo.material_name([0.0, 0.0, 250.0]) == "Air"
        assert geo.material_name([1000.0, 0.0, 0.0]) == "unknownMaterial"
        assert geo.material([1000.0, 0.0, 0.0]) is None

    def test_world_box(self, geo):
        """Test the box of the world volume."""
        box = geo.world_box()
        np.testing.assert_allclose(box.lower, [-500.0] * 3)
        np.testing.assert_allclose(box.upper, [500.0] * 3)
        assert geo.world_volume().volume.name == "volWorld"

    def test_enclosure(self, geo):
        """Test the box of the detector enclosure."""
        box = geo.detector_enclosure_box()
        np.testing.assert_allclose(box.lower, [-300.0] * 3)
        np.testing.assert_allclose(box.upper, [300.0] * 3)
        assert len(geo.find_detector_enclosure()) == 2

        assert geo.find_detector_enclosure("volNothing") == []
        with pytest.raises(GeometryNotFoundError):
            geo.detector_enclosure_box("volNothing")

    def test_find_all_volumes(self, geo2x):
        """Test the collection of nodes by volume name."""
        assert len(geo2x.find_all_volumes(["volTPC"])) == 4
        paths = geo2x.find_all_volume_paths(["volTPCActive"])
        assert len(paths) == 4
        assert paths[0][0].volume.name == "volWorld"

    def test_total_mass(self, geo):
        """Test the mass of a volume and its daughters."""
        # The strips fill the whole auxiliary detector
        capacity = 8.0 * 100.0 * 5.0 * 50.0
        assert geo.total_mass("volAuxDetTop") == pytest.approx(capacity * 1.06)
        assert geo.total_mass() > geo.total_mass("volCryostat")
        with pytest.raises(GeometryNotFoundError):
            geo.total_mass("volNothing")


class TestOpticalDetectors:
    """Test the optical detector queries."""

    def test_sorted_by_z(self, geo):
        """Test that the optical detectors are sorted by increasing z."""
        zs = [geo.op_det_geo_from_op_det(o).center[2] for o in range(4)]
        np.testing.assert_allclose(zs, sorted(OPDET_Z))

    def test_closest(self, geo):
        """Test the optical detector closest to a point."""
        assert geo.get_closest_op_det([-70.0, 0.0, 25.0]) == 2
        assert geo.get_closest_op_det([0.0, 0.0, -100.0]) == 0
        assert geo.get_closest_op_det([1000.0, 0.0, 0.0]) == INVALID_INDEX

    def test_global_numbering(self, geo2x):
        """Test the numbering of the optical detectors across cryostats."""
        assert geo2x.op_det_from_cryo(1, 1) == 5
        opdet = geo2x.cryostat(CryostatID(1)).op_det(1)
        assert geo2x.op_det_geo_from_op_det(5) is opdet
        assert geo2x.get_closest_op_det([150.0, 0.0, -58.0]) == 4
        with pytest.raises(GeometryNotFoundError):
            geo2x.op_det_geo_from_op_det(8)
        with pytest.raises(GeometryNotFoundError):
            geo2x.op_det_from_cryo(4, 0)

    def test_op_channels(self, geo):
        """Test the optical channels of the standard mapping."""
        assert geo.num_op_channels() == 4
        assert geo.max_op_channel() == 4
        assert geo.num_op_hardware_channels(2) == 1
        assert geo.op_channel(2) == 2
        assert geo.op_det_from_op_channel(3) == 3
        assert geo.hardware_channel_from_op_channel(3) == 0
        assert geo.is_valid_op_channel(3)
        assert not geo.is_valid_op_channel(4)
        assert geo.op_det_geo_from_op_channel(3).center[2] == pytest.approx(60.0)
