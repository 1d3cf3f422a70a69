"""Sets up fixtures general to the entire test suite of this package.

This file is read during the collection phase of pytest when running anything
inside this directory.

The fixtures build toy detector node trees:
- `toy`: one cryostat with one TPC, three 100-wire planes (U, V and Z views)
  at a 0.3 cm pitch on the negative x side, four optical detectors behind the
  planes and two auxiliary detectors above and below the cryostat;
- `toy2x`: two cryostats with two TPCs each, back-to-back.
"""

import numpy as np
import pytest

from wiregeo.geo import (
    BoxShape,
    GeoManager,
    GeoMaterial,
    GeometryCore,
    GeoNode,
    GeoVolume,
    TubeShape,
)
from wiregeo.geo.transform import rotation_from_axis

SQRT3_2 = np.sqrt(3.0) / 2.0

# Wire plane layout, from the closest to the farthest from the TPC center
PLANE_OFFSETS = (48.5, 48.8, 49.1)
PLANE_LABELS = ("U", "V", "Z")
WIRE_DIRECTIONS = (
    np.array([0.0, 0.5, SQRT3_2]),
    np.array([0.0, 0.5, -SQRT3_2]),
    np.array([0.0, 1.0, 0.0]),
)
WIRE_HALF_LENGTHS = (20.0, 20.0, 95.0)
WIRE_PITCH = 0.3
NUM_WIRES = 100

# Volumes dimensions
TPC_HALF_SIZES = (50.0, 100.0, 100.0)
ACTIVE_HALF_SIZES = (47.0, 100.0, 100.0)
OPDET_Z = (60.0, -20.0, 20.0, -60.0)

LAR = GeoMaterial("LAr", 1.3954)
AIR = GeoMaterial("Air", 0.0012)
STEEL = GeoMaterial("STEEL_STAINLESS_Fe7Cr2Ni", 7.9300)
SCINT = GeoMaterial("Polystyrene", 1.06)


def increasing_wire_direction(wire_dir):
    """Direction of increasing wire number on a plane normal to x."""
    return np.cross([1.0, 0.0, 0.0], wire_dir)


def make_plane_volume(label, num_wires, direction, half_length, reverse=False):
    """Builds a plane volume with its wires centered on the plane center.

    Wire `k` is offset by `(k - (num_wires - 1)/2) * pitch` along the
    direction of increasing wire number.
    """
    plane = GeoVolume(f"volTPCPlane{label}", BoxShape([0.05, 100.0, 100.0]), LAR)
    wire = GeoVolume(f"volTPCWire{label}", TubeShape(0.0, 0.0075, half_length), STEEL)
    step = WIRE_PITCH * increasing_wire_direction(direction)
    rotation = rotation_from_axis(direction)
    order = range(num_wires - 1, -1, -1) if reverse else range(num_wires)
    for k in order:
        offset = (k - (num_wires - 1) / 2.0) * step
        plane.add(GeoNode.place(wire, k, offset, rotation))

    return plane


def make_tpc_volume(anode_sign, num_wires, num_planes=3):
    """Builds a TPC volume with an active volume and its wire planes.

    Parameters
    ----------
    anode_sign : int
        Side of the TPC (along x) where the wire planes are
    num_wires : Tuple[int]
        Number of wires in each plane (U, V, Z)
    num_planes : int, default 3
        Number of wire planes, the first ones of (U, V, Z)
    """
    tpc = GeoVolume("volTPC", BoxShape(TPC_HALF_SIZES), LAR)
    active = GeoVolume("volTPCActive", BoxShape(ACTIVE_HALF_SIZES), LAR)
    tpc.add(GeoNode.place(active, 0, [-anode_sign * 1.0, 0.0, 0.0]))

    # Planes are stored farthest first so that the sorting is exercised
    for p in range(num_planes - 1, -1, -1):
        plane = make_plane_volume(
            PLANE_LABELS[p],
            num_wires[p],
            WIRE_DIRECTIONS[p],
            WIRE_HALF_LENGTHS[p],
            reverse=(p == 1),
        )
        position = [anode_sign * PLANE_OFFSETS[p], 0.0, 0.0]
        tpc.add(GeoNode.place(plane, 0, position))

    return tpc


def make_aux_det_node(label, y):
    """Builds an auxiliary detector with two sensitive strips along z."""
    aux_det = GeoVolume(f"volAuxDet{label}", BoxShape([100.0, 5.0, 50.0]), SCINT)
    strip = GeoVolume(
        f"volAuxDetSensitive{label}", BoxShape([100.0, 5.0, 25.0]), SCINT
    )
    aux_det.add(GeoNode.place(strip, 0, [0.0, 0.0, 25.0]))
    aux_det.add(GeoNode.place(strip, 1, [0.0, 0.0, -25.0]))

    return GeoNode.place(aux_det, 0, [0.0, y, 0.0])


def build_toy_tree(
    num_cryostats=1, tpcs_per_cryostat=1, num_wires=None, num_planes=3
):
    """Builds the node tree of a toy detector.

    Parameters
    ----------
    num_cryostats : int, default 1
        Number of cryostats (1 or 2)
    tpcs_per_cryostat : int, default 1
        Number of TPCs in each cryostat (1 or 2)
    num_wires : Tuple[int], optional
        Number of wires in each plane (U, V, Z)
    num_planes : int, default 3
        Number of wire planes in each TPC

    Returns
    -------
    GeoNode
        World node
    """
    num_wires = num_wires or (NUM_WIRES,) * 3
    single = num_cryostats == 1
    cryo_half = 200.0 if single else 120.0
    cryo_xs = [0.0] if single else [-150.0, 150.0]
    tpc_xs = [0.0] if tpcs_per_cryostat == 1 else [-55.0, 55.0]

    world = GeoVolume("volWorld", BoxShape([500.0, 500.0, 500.0]), AIR)
    enclosure = GeoVolume("volDetEnclosure", BoxShape([300.0, 300.0, 300.0]), AIR)
    world_node = GeoNode.place(world)
    world.add(GeoNode.place(enclosure))

    # Cryostats are stored in reverse order so that the sorting is exercised
    cryostat = GeoVolume("volCryostat", BoxShape([cryo_half] * 3), LAR)
    opdet = GeoVolume("volOpDetSensitive", TubeShape(0.0, 10.0, 1.0), AIR)
    for t, tpc_x in enumerate(tpc_xs):
        anode_sign = 1 if tpc_x > 0.0 else -1
        tpc = make_tpc_volume(anode_sign, num_wires, num_planes)
        cryostat.add(GeoNode.place(tpc, t, [tpc_x, 0.0, 0.0]))

    opdet_x = -70.0 if tpcs_per_cryostat == 1 else 0.0
    opdet_rotation = rotation_from_axis([1.0, 0.0, 0.0], x_hint=[0.0, 0.0, 1.0])
    for o, z in enumerate(OPDET_Z):
        cryostat.add(GeoNode.place(opdet, o, [opdet_x, 0.0, z], opdet_rotation))

    for c, cryo_x in enumerate(reversed(cryo_xs)):
        enclosure.add(GeoNode.place(cryostat, c, [cryo_x, 0.0, 0.0]))

    # Auxiliary detectors, stored out of name order
    enclosure.add(make_aux_det_node("Top", 250.0))
    enclosure.add(make_aux_det_node("Bottom", -250.0))

    return world_node


@pytest.fixture(name="toy_tree")
def fixture_toy_tree():
    """Node tree of the single TPC toy detector."""
    return build_toy_tree()


@pytest.fixture(name="geo")
def fixture_geo(toy_tree):
    """Loaded geometry of the single TPC toy detector."""
    geo = GeometryCore("toy", tag="toy_v1", version="1.0")
    geo.load_geometry(toy_tree)

    return geo


@pytest.fixture(name="geo2x")
def fixture_geo2x():
    """Loaded geometry of the two cryostats, four TPC toy detector."""
    geo = GeometryCore("toy2x", tag="toy2x_v1", version="1.0")
    geo.load_geometry(build_toy_tree(num_cryostats=2, tpcs_per_cryostat=2))

    return geo


@pytest.fixture(name="reset_manager")
def fixture_reset_manager():
    """Makes sure the geometry singleton is cleared around a test."""
    GeoManager.reset()
    yield
    GeoManager.reset()
