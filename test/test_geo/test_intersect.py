"""Tests for the wire intersections and the multi-view slope algebra."""

import numpy as np
import pytest

from conftest import WIRE_PITCH, build_toy_tree
from wiregeo.geo import GeometryCore, InvalidInputError
from wiregeo.geo.ids import TPCID, PlaneID, WireID
from wiregeo.geo.intersect import (
    compute_third_plane_dtdw,
    compute_third_plane_slope,
    intersect_lines,
    point_within_segments,
    value_in_range,
    wires_intersection_and_offsets,
)

U_PLANE, V_PLANE, Z_PLANE = (PlaneID(0, 0, p) for p in range(3))


def track_slope(plane, direction):
    """Slope of a track direction (drift over wire coordinate) in a plane."""
    dx, dy, dz = direction
    wire_component = dy * np.sin(plane.phi_z) + dz * np.cos(plane.phi_z)
    return dx / wire_component


def distance_to_wire_line(wire, y, z):
    """Distance of a (y, z) point to the projection of a wire."""
    offset = np.array([y - wire.center[1], z - wire.center[2]])
    direction = wire.direction[1:] / np.linalg.norm(wire.direction[1:])
    return abs(offset[0] * direction[1] - offset[1] * direction[0])


class TestWireIntersection:
    """Test the crossing of two wires in the (y, z) projection."""

    def test_crossing(self, geo):
        """Test the crossing of the middle wires of the U and Z planes."""
        wid1, wid2 = WireID(U_PLANE, 50), WireID(Z_PLANE, 50)
        within, intersection = geo.wire_ids_intersect(wid1, wid2)
        assert within
        assert intersection.y == pytest.approx(-0.15 / np.sqrt(3.0))
        assert intersection.z == pytest.approx(0.15)
        assert intersection.tpc == TPCID(0, 0)
        assert intersection.tpc.is_valid

    @pytest.mark.parametrize("w1, w2", [(0, 0), (17, 88), (99, 45), (60, 3)])
    def test_on_both_wires(self, geo, w1, w2):
        """Test that the crossing lies on the projection of both wires."""
        wid1, wid2 = WireID(V_PLANE, w1), WireID(Z_PLANE, w2)
        _, intersection = geo.wire_ids_intersect(wid1, wid2)
        for wid in (wid1, wid2):
            wire = geo.wire(wid)
            dist = distance_to_wire_line(wire, intersection.y, intersection.z)
            assert dist == pytest.approx(0.0, abs=1e-6)

    def test_symmetry(self, geo):
        """Test that the crossing does not depend on the order of the wires."""
        wid1, wid2 = WireID(U_PLANE, 30), WireID(V_PLANE, 70)
        within1, first = geo.wire_ids_intersect(wid1, wid2)
        within2, second = geo.wire_ids_intersect(wid2, wid1)
        assert within1 == within2
        assert first.y == pytest.approx(second.y)
        assert first.z == pytest.approx(second.z)

    def test_outside_wires(self, geo):
        """Test lines crossing beyond the length of the wires."""
        within, intersection = geo.wire_ids_intersect(
            WireID(U_PLANE, 0), WireID(V_PLANE, 0)
        )
        assert not within
        assert intersection.y == pytest.approx(0.0, abs=1e-9)
        assert intersection.z == pytest.approx(-29.7)
        assert not intersection.tpc

    def test_same_plane(self, geo):
        """Test that wires of the same plane do not cross."""
        within, intersection = geo.wire_ids_intersect(
            WireID(Z_PLANE, 1), WireID(Z_PLANE, 2)
        )
        assert not within
        assert np.isinf(intersection.y) and np.isinf(intersection.z)

    def test_missing_wire(self, geo):
        """Test that a missing wire does not cross anything."""
        within, _ = geo.wire_ids_intersect(WireID(U_PLANE, 100), WireID(Z_PLANE, 2))
        assert not within

    def test_different_tpcs(self, geo2x):
        """Test that wires of different TPCs do not cross."""
        within, _ = geo2x.wire_ids_intersect(
            WireID(0, 0, 0, 50), WireID(0, 1, 2, 50)
        )
        assert not within

    def test_intersection_point(self, geo):
        """Test the tuple form of the crossing."""
        found, y, z = geo.intersection_point(WireID(U_PLANE, 50), WireID(Z_PLANE, 50))
        assert found
        assert (y, z) == pytest.approx((-0.15 / np.sqrt(3.0), 0.15))

    def test_channels(self, geo):
        """Test the crossing of the wires of two channels."""
        found, y, z = geo.channels_intersect(50, 250)
        assert found
        assert (y, z) == pytest.approx((-0.15 / np.sqrt(3.0), 0.15))

        found, y, z = geo.channels_intersect(50, 1000)
        assert not found
        assert np.isinf(y) and np.isinf(z)


class TestWireIntersection3D:
    """Test the closest approach of two wires in 3D."""

    def test_midpoint(self, geo):
        """Test the midpoint between a U and a Z wire."""
        within, point = geo.wire_ids_intersect_3d(
            WireID(U_PLANE, 50), WireID(Z_PLANE, 50)
        )
        assert within
        np.testing.assert_allclose(
            point, [-48.8, -0.15 / np.sqrt(3.0), 0.15], atol=1e-9
        )

    def test_outside_wires(self, geo):
        """Test wires whose closest approach is beyond their length."""
        within, point = geo.wire_ids_intersect_3d(
            WireID(U_PLANE, 0), WireID(V_PLANE, 0)
        )
        assert not within
        assert point[2] == pytest.approx(-29.7)

    def test_same_plane(self, geo):
        """Test that wires of the same plane have no closest approach."""
        within, point = geo.wire_ids_intersect_3d(
            WireID(V_PLANE, 1), WireID(V_PLANE, 2)
        )
        assert not within
        assert np.all(np.isinf(point))


class TestThirdPlane:
    """Test the multi-view algebra."""

    def test_third_plane(self, geo):
        """Test the identification of the remaining plane."""
        assert geo.third_plane(U_PLANE, Z_PLANE) == V_PLANE
        assert geo.third_plane(Z_PLANE, V_PLANE) == U_PLANE

    def test_third_plane_same(self, geo):
        """Test that two identical planes leave two candidates."""
        with pytest.raises(InvalidInputError):
            geo.third_plane(U_PLANE, U_PLANE)

    def test_third_plane_two_planes(self):
        """Test that the third plane search needs a TPC with three planes."""
        geo = GeometryCore("toy")
        geo.load_geometry(build_toy_tree(num_planes=2))
        assert geo.num_planes() == 2
        with pytest.raises(InvalidInputError):
            geo.third_plane(PlaneID(0, 0, 0), PlaneID(0, 0, 1))
        with pytest.raises(InvalidInputError):
            geo.third_plane_slope(PlaneID(0, 0, 0), 1.0, PlaneID(0, 0, 1), 2.0)

    def test_third_plane_slope(self, geo):
        """Test that the slope of a track is recovered in the third plane."""
        direction = (1.0, 0.3, 0.8)
        slope_u = track_slope(geo.plane(U_PLANE), direction)
        slope_v = track_slope(geo.plane(V_PLANE), direction)

        slope_z = geo.third_plane_slope(U_PLANE, slope_u, V_PLANE, slope_v)
        assert slope_z == pytest.approx(1.0 / 0.8)

        slope = geo.third_plane_slope(
            U_PLANE, slope_u, Z_PLANE, slope_z, output_plane=V_PLANE
        )
        assert slope == pytest.approx(slope_v)

    def test_third_plane_dtdw(self, geo):
        """Test the slope in time over wire units."""
        direction = (1.0, -0.4, 0.5)
        slope_u = track_slope(geo.plane(U_PLANE), direction)
        slope_z = track_slope(geo.plane(Z_PLANE), direction)

        dtdw = geo.third_plane_dtdw(
            U_PLANE, WIRE_PITCH * slope_u, Z_PLANE, WIRE_PITCH * slope_z
        )
        expected = WIRE_PITCH * track_slope(geo.plane(V_PLANE), direction)
        assert dtdw == pytest.approx(expected)

    def test_flat_slope(self, geo):
        """Test that flat slopes cannot be resolved."""
        assert geo.third_plane_slope(U_PLANE, 5e-4, V_PLANE, -2e-4) == 0.001

        # With a single flat slope, the sentinel is used as inverse slope
        slope = geo.third_plane_slope(U_PLANE, 5e-4, V_PLANE, 2.0)
        assert slope == pytest.approx(1000.0)
        slope = geo.third_plane_slope(U_PLANE, 2.0, V_PLANE, -5e-4)
        assert slope == pytest.approx(1000.0)

    @pytest.mark.parametrize("slope1, slope2", [(1e-3, 1e-3), (-1e-3, 2.0)])
    def test_flat_slope_threshold(self, slope1, slope2):
        """Test that slopes at the flatness threshold are not resolved."""
        angles = (-np.pi / 3, np.pi / 3, 0.0)
        slope = compute_third_plane_slope(
            angles[0], slope1, angles[1], slope2, angles[2]
        )
        assert slope == pytest.approx(1000.0)

    def test_bad_planes(self, geo, geo2x):
        """Test that the input planes must be distinct planes of one TPC."""
        with pytest.raises(InvalidInputError):
            geo.third_plane_slope(U_PLANE, 1.0, U_PLANE, 2.0)
        with pytest.raises(InvalidInputError):
            geo2x.third_plane_slope(PlaneID(0, 0, 0), 1.0, PlaneID(0, 1, 1), 2.0)
        with pytest.raises(InvalidInputError):
            geo.third_plane_dtdw(V_PLANE, 1.0, V_PLANE, 2.0)

    def test_static_forms(self):
        """Test the angle-based forms, available without a geometry."""
        angles = (-np.pi / 3, np.pi / 3, 0.0)
        slope = compute_third_plane_slope(angles[0], 2.0, angles[1], 3.0, angles[2])
        assert GeometryCore.compute_third_plane_slope(
            angles[0], 2.0, angles[1], 3.0, angles[2]
        ) == pytest.approx(slope)

        # With identical pitches, the pitch scales the slope
        dtdw = compute_third_plane_dtdw(
            angles[0], 0.5, 1.0, angles[1], 0.5, 1.5, angles[2], 0.5
        )
        assert dtdw == pytest.approx(0.5 * slope)


class TestKernels:
    """Test the compiled intersection kernels directly."""

    def test_intersect_lines(self):
        """Test the crossing of two 2D lines."""
        cross, x, y = intersect_lines(0.0, 0.0, 1.0, 1.0, 0.0, 1.0, 1.0, 0.0)
        assert cross
        assert (x, y) == pytest.approx((0.5, 0.5))

    def test_parallel_lines(self):
        """Test that parallel lines do not cross."""
        cross, x, y = intersect_lines(0.0, 0.0, 1.0, 0.0, 0.0, 1.0, 1.0, 1.0)
        assert not cross
        assert np.isinf(x) and np.isinf(y)

    def test_value_in_range(self):
        """Test the range check, in any order and with tolerance."""
        assert value_in_range(0.5, 1.0, 0.0)
        assert value_in_range(1.0 + 1e-10, 0.0, 1.0)
        assert not value_in_range(1.1, 0.0, 1.0)

    def test_point_within_segments(self):
        """Test the extent check of a point against two segments."""
        segments = (0.0, 0.0, 1.0, 1.0, 0.0, 1.0, 1.0, 0.0)
        assert point_within_segments(*segments, 0.5, 0.5)
        assert not point_within_segments(*segments, 1.5, 1.5)

    def test_closest_approach(self):
        """Test the closest approach of two skew lines."""
        point, offset1, offset2 = wires_intersection_and_offsets(
            np.array([-2.0, 0.0, 0.0]),
            np.array([1.0, 0.0, 0.0]),
            np.array([0.0, 0.0, 1.0]),
            np.array([0.0, 1.0, 0.0]),
        )
        np.testing.assert_allclose(point, [0.0, 0.0, 0.5])
        assert offset1 == pytest.approx(2.0)
        assert offset2 == pytest.approx(0.0)

    def test_closest_approach_parallel(self):
        """Test that parallel lines have no closest approach."""
        point, offset1, _ = wires_intersection_and_offsets(
            np.array([0.0, 0.0, 0.0]),
            np.array([1.0, 0.0, 0.0]),
            np.array([0.0, 1.0, 0.0]),
            np.array([1.0, 0.0, 0.0]),
        )
        assert np.all(np.isinf(point))
        assert np.isinf(offset1)
