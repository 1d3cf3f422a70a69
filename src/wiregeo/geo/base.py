"""Module with the geometry core of a wire-readout detector.

The geometry core owns the whole object model of the detector:
- cryostats, with their TPCs, wire planes, wires and optical detectors;
- auxiliary detectors, with their sensitive volumes.

The model is built from a scene-graph node tree in a single pass (build,
sort, relabel and derive) and is read-only afterwards. It also provides a
plethora of useful functions to query the geometry.
"""

from bisect import bisect_right
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from wiregeo.utils.logger import logger

from .builder import GeometryBuilderStandard
from .channel_map import (
    INVALID_CHANNEL,
    ChannelMapAlg,
    ChannelMapStandardAlg,
    GeometryData,
)
from .detector import (
    AuxDetGeo,
    AuxDetSensitiveGeo,
    Box,
    CryostatGeo,
    OpDetGeo,
    PlaneGeo,
    TPCGeo,
    WireGeo,
)
from .enums import SignalType, View
from .errors import GeometryError, GeometryNotFoundError, InvalidInputError
from .ids import (
    INVALID_INDEX,
    ROPID,
    TPCID,
    CryostatID,
    ElementID,
    PlaneID,
    TPCSetID,
    WireID,
    next_id,
)
from .intersect import (
    compute_third_plane_dtdw,
    compute_third_plane_slope,
    intersect_lines,
    point_within_segments,
    wires_intersection_and_offsets,
)
from .node import BoxShape
from .transform import LocalTransformation
from .walker import collect_nodes_by_name, collect_paths_by_name, find_first_volume

__all__ = ["GeometryCore", "WireIDIntersection", "ElementSequence"]

# Name of the identifier classes, by element kind
ID_CLASSES = {"cryostat": CryostatID, "tpc": TPCID, "plane": PlaneID, "wire": WireID}


@dataclass(eq=False)
class WireIDIntersection:
    """Intersection of two wires in the (y, z) projection.

    Attributes
    ----------
    y : float
        y coordinate of the intersection
    z : float
        z coordinate of the intersection
    tpc : TPCID
        TPC of the wires, invalid if the wires do not cross within their
        length
    """

    y: float = np.inf
    z: float = np.inf
    tpc: TPCID = None

    def __post_init__(self):
        if self.tpc is None:
            self.tpc = TPCID()


class ElementSequence:
    """Lazy, finite sequence which can be iterated over several times.

    Parameters
    ----------
    factory : Callable
        Function which returns a fresh iterator over the elements
    """

    def __init__(self, factory):
        self._factory = factory

    def __iter__(self):
        return iter(self._factory())

    def __len__(self):
        return sum(1 for _ in self)


class GeometryCore:
    """Handles all geometry functions for a collection of cryostats, each
    holding TPCs with wire planes and optical detectors, and of auxiliary
    detectors.

    Attributes
    ----------
    name : str
        Name of the detector
    tag : str
        Tag or label for the geometry instance
    version : str
        Version number of the geometry
    surface_y : float
        Position of the earth surface along y, in cm
    min_wire_z_dist : float
        Minimum distance between wires along z, in cm
    position_epsilon : float
        Relative tolerance applied to the containment checks
    builder_cfg : dict
        Configuration of the standard geometry builder
    root : GeoNode
        Top node of the loaded node tree
    cryostats : List[CryostatGeo]
        Sorted cryostats
    aux_dets : List[AuxDetGeo]
        Sorted auxiliary detectors
    channel_map : ChannelMapAlg
        Readout channel mapping
    """

    world_volume_name = "volWorld"

    def __init__(
        self,
        name: str,
        tag: Optional[str] = None,
        version: Optional[str] = None,
        surface_y: float = 0.0,
        min_wire_z_dist: float = 3.0,
        position_epsilon: float = 1e-4,
        builder: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the geometry core, without loading any geometry.

        Parameters
        ----------
        name : str
            Name of the detector
        tag : str, optional
            Tag or label for the geometry instance
        version : str, optional
            Version number of the geometry
        surface_y : float, default 0.
            Position of the earth surface along y, in cm
        min_wire_z_dist : float, default 3.
            Minimum distance between wires along z, in cm
        position_epsilon : float, default 1e-4
            Relative tolerance applied to the containment checks
        builder : dict, optional
            Configuration of the standard geometry builder
        """
        # Store basic geometry information
        self.name = name
        self.tag = tag
        self.version = version
        self.surface_y = surface_y
        self.min_wire_z_dist = min_wire_z_dist
        self.position_epsilon = position_epsilon
        self.builder_cfg = builder if builder is not None else {}

        # Initialize an empty model
        self.root = None
        self.cryostats: List[CryostatGeo] = []
        self.aux_dets: List[AuxDetGeo] = []
        self.channel_map: Optional[ChannelMapAlg] = None
        self._opdet_offsets: List[int] = [0]

    # Loading protocol
    def load_geometry(
        self,
        root,
        builder: Optional[GeometryBuilderStandard] = None,
        channel_map: Optional[ChannelMapAlg] = None,
    ):
        """Loads a new geometry from a node tree.

        The whole model is rebuilt: the previous model is cleared, the
        elements are extracted by the builder, sorted with the sorter
        provided by the channel mapping, relabelled and derived. The channel
        mapping is initialized last.

        Parameters
        ----------
        root : GeoNode
            Top node of the tree (the world volume)
        builder : GeometryBuilderStandard, optional
            Builder used to extract the elements. By default, a standard
            builder configured as specified in the geometry configuration.
        channel_map : ChannelMapAlg, optional
            Readout channel mapping (standard mapping by default)
        """
        if root is None:
            raise InvalidInputError("Cannot load a geometry without a top node.")

        self.clear()
        self.root = root

        if builder is None:
            builder = GeometryBuilderStandard(**self.builder_cfg)
        if channel_map is None:
            channel_map = ChannelMapStandardAlg()

        self.build(builder)
        self.sort(channel_map.sorter())
        self.update_after_sorting()
        self.apply_channel_map(channel_map)

        logger.info(
            "Loaded geometry '%s' with %d cryostat(s), %d TPC(s), %d plane(s) "
            "and %d auxiliary detector(s).",
            self.name,
            self.num_cryostats,
            self.total_num_tpcs,
            sum(1 for _ in self.iterate_ids("plane")),
            self.num_aux_dets,
        )

    @property
    def is_loaded(self) -> bool:
        """Whether a geometry is loaded."""
        return self.root is not None

    def clear(self):
        """Drops the loaded model."""
        if self.channel_map is not None:
            self.channel_map.uninitialize()

        self.root = None
        self.cryostats = []
        self.aux_dets = []
        self.channel_map = None
        self._opdet_offsets = [0]

    def build(self, builder: GeometryBuilderStandard):
        """Extracts the cryostats and auxiliary detectors from the tree."""
        path = [self.root]
        self.cryostats = builder.extract_cryostats(path)
        self.aux_dets = builder.extract_auxiliary_detectors(path)

    def sort(self, sorter):
        """Sorts all the elements of the model in place."""
        sorter.sort_aux_dets(self.aux_dets)
        for aux_det in self.aux_dets:
            aux_det.sort_sub_volumes(sorter)

        sorter.sort_cryostats(self.cryostats)
        for cryo in self.cryostats:
            cryo.sort_sub_volumes(sorter)

    def update_after_sorting(self):
        """Relabels all elements, derives the planes and rebuilds the
        lookup tables which depend on the element order."""
        for c, cryo in enumerate(self.cryostats):
            cryo.update_after_sorting(CryostatID(c))

        # Global numbering of the optical detectors, cryostat by cryostat
        self._opdet_offsets = [0]
        for cryo in self.cryostats:
            self._opdet_offsets.append(self._opdet_offsets[-1] + cryo.num_op_dets)

    def apply_channel_map(self, channel_map: ChannelMapAlg):
        """Initializes the readout channel mapping on the sorted model."""
        channel_map.initialize(GeometryData(self.cryostats, self.aux_dets))
        self.channel_map = channel_map

    def _check_channel_map(self) -> ChannelMapAlg:
        if self.channel_map is None:
            raise GeometryError("No channel mapping: load a geometry first.")

        return self.channel_map

    # Element counts
    @property
    def num_cryostats(self) -> int:
        """Number of cryostats in the detector."""
        return len(self.cryostats)

    def num_tpcs(self, cryostat_id: Optional[CryostatID] = None) -> int:
        """Number of TPCs in a cryostat (0 if the cryostat does not exist)."""
        cryostat_id = cryostat_id if cryostat_id is not None else CryostatID(0)
        if not self.has_cryostat(cryostat_id):
            return 0

        return self.cryostats[cryostat_id.cryostat].num_tpcs

    def num_planes(self, tpc_id: Optional[TPCID] = None) -> int:
        """Number of planes in a TPC (0 if the TPC does not exist)."""
        tpc_id = tpc_id if tpc_id is not None else TPCID(0, 0)
        if not self.has_tpc(tpc_id):
            return 0

        return self.tpc(tpc_id).num_planes

    def num_wires(self, plane_id: Optional[PlaneID] = None) -> int:
        """Number of wires in a plane (0 if the plane does not exist)."""
        plane_id = plane_id if plane_id is not None else PlaneID(0, 0, 0)
        if not self.has_plane(plane_id):
            return 0

        return self.plane(plane_id).num_wires

    @property
    def num_aux_dets(self) -> int:
        """Number of auxiliary detectors."""
        return len(self.aux_dets)

    def num_aux_det_sensitive(self, aux_det: int) -> int:
        """Number of sensitive volumes of an auxiliary detector."""
        return self.aux_det(aux_det).num_sensitive

    @property
    def num_op_dets(self) -> int:
        """Number of optical detectors in the whole detector."""
        return self._opdet_offsets[-1]

    @property
    def max_tpcs(self) -> int:
        """Largest number of TPCs in a cryostat."""
        return max((cryo.num_tpcs for cryo in self.cryostats), default=0)

    @property
    def total_num_tpcs(self) -> int:
        """Number of TPCs in the whole detector."""
        return sum(cryo.num_tpcs for cryo in self.cryostats)

    @property
    def max_planes(self) -> int:
        """Largest number of planes in a TPC."""
        return max((cryo.max_planes for cryo in self.cryostats), default=0)

    @property
    def max_wires(self) -> int:
        """Largest number of wires in a plane."""
        return max((cryo.max_wires for cryo in self.cryostats), default=0)

    @property
    def views(self) -> set:
        """Set of views measured by the planes of the detector."""
        views = set()
        for tpc in self.iterate("tpc"):
            views |= tpc.views

        return views

    @property
    def num_views(self) -> int:
        """Number of different views measured in the detector."""
        return len(self.views)

    # Element existence and access
    def has_cryostat(self, cryostat_id: CryostatID) -> bool:
        """Whether a cryostat exists."""
        return 0 <= cryostat_id.cryostat < self.num_cryostats

    def has_tpc(self, tpc_id: TPCID) -> bool:
        """Whether a TPC exists."""
        if not self.has_cryostat(tpc_id):
            return False

        return self.cryostats[tpc_id.cryostat].has_tpc(tpc_id.tpc)

    def has_plane(self, plane_id: PlaneID) -> bool:
        """Whether a plane exists."""
        if not self.has_tpc(plane_id):
            return False

        return self.tpc(plane_id).has_plane(plane_id.plane)

    def has_wire(self, wire_id: WireID) -> bool:
        """Whether a wire exists."""
        if not self.has_plane(wire_id):
            return False

        return self.plane(wire_id).has_wire(wire_id.wire)

    def has_element(self, element_id: ElementID) -> bool:
        """Whether the element of a cryostat, TPC, plane or wire ID exists."""
        checks = (self.has_cryostat, self.has_tpc, self.has_plane, self.has_wire)
        return checks[element_id.depth - 1](element_id)

    def cryostat(self, cryostat_id: Optional[CryostatID] = None) -> CryostatGeo:
        """Returns a cryostat.

        Parameters
        ----------
        cryostat_id : CryostatID, optional
            Identifier of the cryostat (or of any element in it). The first
            cryostat is returned if not specified.

        Returns
        -------
        CryostatGeo
            Requested cryostat
        """
        cryostat_id = cryostat_id if cryostat_id is not None else CryostatID(0)
        if not self.has_cryostat(cryostat_id):
            raise GeometryNotFoundError(
                f"Cryostat {cryostat_id.as_cryostat_id()} does not exist "
                f"({self.num_cryostats} cryostats)."
            )

        return self.cryostats[cryostat_id.cryostat]

    def tpc(self, tpc_id: Optional[TPCID] = None) -> TPCGeo:
        """Returns a TPC (the first TPC of the first cryostat by default)."""
        tpc_id = tpc_id if tpc_id is not None else TPCID(0, 0)
        return self.cryostat(tpc_id).tpc(tpc_id.tpc)

    def plane(self, plane_id: Optional[PlaneID] = None) -> PlaneGeo:
        """Returns a wire plane (the first plane of the first TPC by default)."""
        plane_id = plane_id if plane_id is not None else PlaneID(0, 0, 0)
        return self.tpc(plane_id).plane(plane_id.plane)

    def wire(self, wire_id: WireID) -> WireGeo:
        """Returns a wire."""
        return self.plane(wire_id).wire(wire_id.wire)

    def element(self, element_id: ElementID):
        """Returns the cryostat, TPC, plane or wire an identifier points to."""
        getters = (self.cryostat, self.tpc, self.plane, self.wire)
        return getters[element_id.depth - 1](element_id)

    def aux_det(self, aux_det: int = 0) -> AuxDetGeo:
        """Returns an auxiliary detector by index."""
        if not 0 <= aux_det < self.num_aux_dets:
            raise GeometryNotFoundError(
                f"Auxiliary detector {aux_det} does not exist "
                f"({self.num_aux_dets} detectors)."
            )

        return self.aux_dets[aux_det]

    def aux_det_sensitive(self, aux_det: int, sensitive: int) -> AuxDetSensitiveGeo:
        """Returns a sensitive volume of an auxiliary detector by index."""
        return self.aux_det(aux_det).sensitive_volume(sensitive)

    # Iteration
    def _num_siblings(self, element_id: ElementID) -> int:
        """Number of elements at the depth of an ID, within its parent."""
        if element_id.depth == 1:
            return self.num_cryostats
        if element_id.depth == 2:
            return self.num_tpcs(element_id.parent())
        if element_id.depth == 3:
            return self.num_planes(element_id.parent())

        return self.num_wires(element_id.parent())

    def _count(self, id_class, parent: Optional[ElementID] = None) -> int:
        """Number of elements of a kind in a container (whole detector if
        no container is specified)."""
        return sum(1 for _ in self._generate_ids(id_class, parent))

    def _resolve_kind(self, kind):
        if isinstance(kind, str):
            if kind not in ID_CLASSES:
                raise InvalidInputError(
                    f"Unknown element kind '{kind}', must be one of "
                    f"{list(ID_CLASSES)}."
                )
            return ID_CLASSES[kind]

        return kind

    def get_begin_id(self, kind, parent: Optional[ElementID] = None) -> ElementID:
        """Identifier of the first element of a kind in a container.

        Parameters
        ----------
        kind : Union[str, type]
            Element kind ('cryostat', 'tpc', 'plane' or 'wire') or ID class
        parent : ElementID, optional
            Container (whole detector if not specified)

        Returns
        -------
        ElementID
            First identifier (the element may not exist if the container is
            empty)
        """
        id_class = self._resolve_kind(kind)
        depth = len(id_class.fields)
        if parent is None:
            return id_class(*([0] * depth))

        if parent.depth > depth:
            raise InvalidInputError(f"{parent} cannot contain {id_class.__name__}.")

        return id_class(parent, *([0] * (depth - parent.depth)))

    def get_end_id(self, kind, parent: Optional[ElementID] = None) -> ElementID:
        """Identifier which follows the last element of a kind in a container.

        The end identifier of an empty container is its begin identifier,
        marked invalid. Otherwise, it is the first identifier of the next
        container (which may be invalid if there is no next container).

        Parameters
        ----------
        kind : Union[str, type]
            Element kind ('cryostat', 'tpc', 'plane' or 'wire') or ID class
        parent : ElementID, optional
            Container (whole detector if not specified)

        Returns
        -------
        ElementID
            End identifier
        """
        id_class = self._resolve_kind(kind)
        depth = len(id_class.fields)
        if parent is None:
            return id_class(self.num_cryostats, *([0] * (depth - 1)), is_valid=False)

        begin = self.get_begin_id(id_class, parent)
        if self._count(id_class, parent) == 0:
            return begin.mark_invalid()

        if parent.depth == depth:
            return next_id(parent, self._num_siblings)

        following = next_id(parent, self._num_siblings)
        return id_class(following, *([0] * (depth - parent.depth)))

    def get_begin_tpc_id(self, cryostat_id: CryostatID) -> TPCID:
        """Identifier of the first TPC of a cryostat."""
        return self.get_begin_id(TPCID, cryostat_id)

    def get_end_tpc_id(self, cryostat_id: CryostatID) -> TPCID:
        """Identifier following the last TPC of a cryostat."""
        return self.get_end_id(TPCID, cryostat_id)

    def get_begin_plane_id(self, parent: CryostatID) -> PlaneID:
        """Identifier of the first plane of a TPC (or cryostat)."""
        return self.get_begin_id(PlaneID, parent)

    def get_end_plane_id(self, parent: CryostatID) -> PlaneID:
        """Identifier following the last plane of a TPC (or cryostat)."""
        return self.get_end_id(PlaneID, parent)

    def get_begin_wire_id(self, parent: CryostatID) -> WireID:
        """Identifier of the first wire of a plane (or TPC, or cryostat)."""
        return self.get_begin_id(WireID, parent)

    def get_end_wire_id(self, parent: CryostatID) -> WireID:
        """Identifier following the last wire of a plane (or TPC, or
        cryostat)."""
        return self.get_end_id(WireID, parent)

    def _generate_ids(self, id_class, parent: Optional[ElementID] = None):
        """Yields the identifiers of the elements of a kind, in order."""
        current = self.get_begin_id(id_class, parent)
        if not self.has_element(current):
            current = next_id(current, self._num_siblings)

        while current.is_valid:
            if parent is not None and not current.is_inside(parent):
                break
            yield current
            current = next_id(current, self._num_siblings)

    def iterate_ids(self, kind, parent: Optional[ElementID] = None) -> ElementSequence:
        """Sequence of the identifiers of all elements of a kind, in ID order.

        Parameters
        ----------
        kind : Union[str, type]
            Element kind ('cryostat', 'tpc', 'plane' or 'wire') or ID class
        parent : ElementID, optional
            Container to restrict the sequence to

        Returns
        -------
        ElementSequence
            Lazy sequence of identifiers, which can be iterated several times
        """
        id_class = self._resolve_kind(kind)
        return ElementSequence(lambda: self._generate_ids(id_class, parent))

    def iterate(self, kind, parent: Optional[ElementID] = None) -> ElementSequence:
        """Sequence of all elements of a kind, in ID order (see
        :meth:`iterate_ids`)."""
        ids = self.iterate_ids(kind, parent)
        return ElementSequence(lambda: (self.element(i) for i in ids))

    # Position lookups
    @property
    def wiggle(self) -> float:
        """Scaling factor of the box half dimensions in containment checks."""
        return 1.0 + self.position_epsilon

    def find_cryostat_at_position(self, point: np.ndarray) -> Optional[CryostatGeo]:
        """Finds the cryostat containing a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        CryostatGeo, optional
            First cryostat containing the point, `None` if there is none
        """
        for cryo in self.cryostats:
            if cryo.contains_position(point, self.wiggle):
                return cryo

        return None

    def position_to_cryostat_id(self, point: np.ndarray) -> CryostatID:
        """Identifier of the cryostat containing a point (invalid if none)."""
        cryo = self.find_cryostat_at_position(point)
        return cryo.id if cryo is not None else CryostatID()

    def position_to_cryostat(self, point: np.ndarray) -> CryostatGeo:
        """Returns the cryostat containing a point, raises if there is none."""
        cryo = self.find_cryostat_at_position(point)
        if cryo is None:
            raise GeometryNotFoundError(f"Can't find any cryostat at position {point}.")

        return cryo

    def find_tpc_at_position(self, point: np.ndarray) -> TPCID:
        """Finds the TPC containing a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        TPCID
            Identifier of the TPC containing the point. If the point is in a
            cryostat but in none of its TPCs, the identifier is invalid but
            its cryostat number is set. If the point is in no cryostat, the
            identifier is fully invalid.
        """
        cryo = self.find_cryostat_at_position(point)
        if cryo is None:
            return TPCID()

        return cryo.find_tpc_at_position(point, self.wiggle)

    def position_to_tpc_id(self, point: np.ndarray) -> TPCID:
        """Identifier of the TPC containing a point (fully invalid if none)."""
        tpc_id = self.find_tpc_at_position(point)
        return tpc_id if tpc_id else TPCID()

    def position_to_tpc(self, point: np.ndarray) -> TPCGeo:
        """Returns the TPC containing a point, raises if there is none."""
        tpc_id = self.find_tpc_at_position(point)
        if not tpc_id:
            raise GeometryNotFoundError(f"Can't find any TPC at position {point}.")

        return self.tpc(tpc_id)

    def find_aux_det_at_position(self, point: np.ndarray, tolerance: float = 0.0):
        """Index of the auxiliary detector containing a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates
        tolerance : float, default 0.
            Amount by which the detectors are grown on each side, in cm

        Returns
        -------
        int
            Index of the auxiliary detector
        """
        return self._check_channel_map().nearest_aux_det(
            point, self.aux_dets, tolerance
        )

    def position_to_aux_det(self, point: np.ndarray, tolerance: float = 0.0):
        """Returns the auxiliary detector containing a point."""
        return self.aux_dets[self.find_aux_det_at_position(point, tolerance)]

    def find_aux_det_sensitive_at_position(
        self, point: np.ndarray, tolerance: float = 0.0
    ) -> Tuple[int, int]:
        """Indexes of the auxiliary detector and of its sensitive volume
        containing a point."""
        return self._check_channel_map().nearest_sensitive_aux_det(
            point, self.aux_dets, tolerance
        )

    def position_to_aux_det_sensitive(
        self, point: np.ndarray, tolerance: float = 0.0
    ) -> AuxDetSensitiveGeo:
        """Returns the auxiliary detector sensitive volume containing a point."""
        ad, sv = self.find_aux_det_sensitive_at_position(point, tolerance)
        return self.aux_det_sensitive(ad, sv)

    # TPC and plane properties
    def plane_pitch(
        self,
        first: Optional[Union[TPCID, PlaneID]] = None,
        second: Union[int, PlaneID] = 0,
        third: int = 1,
    ) -> float:
        """Distance between two planes of a TPC.

        Can be called as `plane_pitch(tpc_id, p1, p2)` or as
        `plane_pitch(plane_id1, plane_id2)`.

        Returns
        -------
        float
            Distance between the two planes
        """
        if isinstance(first, PlaneID):
            if not isinstance(second, PlaneID):
                raise InvalidInputError(
                    f"The pitch from plane {first} needs a second plane ID, "
                    f"got {second!r}."
                )
            if first.as_tpc_id() != second.as_tpc_id():
                raise InvalidInputError(
                    f"Planes {first} and {second} are not in the same TPC."
                )
            return self.tpc(first).plane_pitch(first.plane, second.plane)

        tpc_id = first if first is not None else TPCID(0, 0)
        return self.tpc(tpc_id).plane_pitch(second, third)

    def wire_pitch(
        self,
        plane: Optional[Union[PlaneID, View]] = None,
        tpc_id: Optional[TPCID] = None,
    ) -> float:
        """Wire pitch of a plane.

        Parameters
        ----------
        plane : Union[PlaneID, View], optional
            Plane identifier, or view of the plane in the TPC `tpc_id`. The
            first plane of the first TPC by default.
        tpc_id : TPCID, optional
            TPC where to look for a view (first TPC by default)

        Returns
        -------
        float
            Wire pitch in cm
        """
        if isinstance(plane, View):
            tpc_id = tpc_id if tpc_id is not None else TPCID(0, 0)
            return self.tpc(tpc_id).plane_by_view(plane).wire_pitch

        return self.plane(plane).wire_pitch

    def wire_angle_to_vertical(self, view: View, tpc_id: Optional[TPCID] = None):
        """Angle of the wires of a view from the z axis, in radians.

        Raises
        ------
        GeometryNotFoundError
            If the TPC has no plane with the view
        """
        tpc_id = tpc_id if tpc_id is not None else TPCID(0, 0)
        return self.tpc(tpc_id).plane_by_view(view).theta_z

    def det_half_width(self, tpc_id: Optional[TPCID] = None) -> float:
        """Half width (x) of the active volume of a TPC."""
        return self.tpc(tpc_id).active_box.half_width

    def det_half_height(self, tpc_id: Optional[TPCID] = None) -> float:
        """Half height (y) of the active volume of a TPC."""
        return self.tpc(tpc_id).active_box.half_height

    def det_length(self, tpc_id: Optional[TPCID] = None) -> float:
        """Length (z) of the active volume of a TPC."""
        return self.tpc(tpc_id).active_box.length

    def cryostat_half_width(self, cryostat_id: Optional[CryostatID] = None) -> float:
        """Half width (x) of a cryostat."""
        return self.cryostat(cryostat_id).half_width

    def cryostat_half_height(self, cryostat_id: Optional[CryostatID] = None) -> float:
        """Half height (y) of a cryostat."""
        return self.cryostat(cryostat_id).half_height

    def cryostat_length(self, cryostat_id: Optional[CryostatID] = None) -> float:
        """Length (z) of a cryostat."""
        return self.cryostat(cryostat_id).length

    def get_lar_tpc_volume_name(self, tpc_id: Optional[TPCID] = None) -> str:
        """Name of the volume of a TPC."""
        return self.tpc(tpc_id).name

    def get_cryostat_volume_name(self, cryostat_id: Optional[CryostatID] = None):
        """Name of the volume of a cryostat."""
        return self.cryostat(cryostat_id).name

    # Wire queries
    def wire_end_points(self, wire_id: WireID) -> Tuple[np.ndarray, np.ndarray]:
        """End points of a wire.

        The end point has the larger z coordinate. For vertical wires, it has
        the larger y coordinate.

        Parameters
        ----------
        wire_id : WireID
            Identifier of the wire

        Returns
        -------
        np.ndarray
            (3) Start point
        np.ndarray
            (3) End point
        """
        wire = self.wire(wire_id)
        start, end = wire.start, wire.end
        if end[2] < start[2]:
            start, end = end, start
        if end[1] < start[1] and abs(end[2] - start[2]) < 0.01:
            start, end = end, start

        return start, end

    def wire_coordinate(self, point: np.ndarray, plane_id: PlaneID) -> float:
        """Coordinate of a point in units of wire pitch in a plane."""
        return self.plane(plane_id).wire_coordinate(point)

    def nearest_wire_id(self, point: np.ndarray, plane_id: PlaneID) -> WireID:
        """Identifier of the wire of a plane closest to a point (invalid if
        the point is beyond the first or last wire)."""
        return self.plane(plane_id).nearest_wire_id(point)

    def nearest_channel(self, point: np.ndarray, plane_id: PlaneID) -> int:
        """Channel of the wire of a plane closest to a point.

        Returns
        -------
        int
            Channel number, :data:`INVALID_CHANNEL` if the point is beyond
            the first or last wire of the plane
        """
        wire_id = self.nearest_wire_id(point, plane_id)
        if not wire_id:
            logger.warning(
                "Position %s is outside of plane %s, no channel.", point, plane_id
            )
            return INVALID_CHANNEL

        return self.plane_wire_to_channel(wire_id)

    # Wire intersections
    def _wire_id_intersection_check(self, wid1: WireID, wid2: WireID) -> bool:
        """Checks that two wires can cross, logs an error if not."""
        for i, wid in enumerate((wid1, wid2)):
            if not self.has_wire(wid):
                logger.error("Wire %d (%s) does not exist.", i + 1, wid)
                return False

        if wid1.as_tpc_id() != wid2.as_tpc_id():
            logger.error("Wires %s and %s are not in the same TPC.", wid1, wid2)
            return False

        if wid1.as_plane_id() == wid2.as_plane_id():
            logger.error("Wires %s and %s are in the same plane.", wid1, wid2)
            return False

        return True

    def wire_ids_intersect(
        self, wid1: WireID, wid2: WireID
    ) -> Tuple[bool, WireIDIntersection]:
        """Computes the crossing point of two wires in the (y, z) projection.

        Parameters
        ----------
        wid1 : WireID
            Identifier of the first wire
        wid2 : WireID
            Identifier of the second wire

        Returns
        -------
        bool
            Whether the crossing point is within the length of both wires
        WireIDIntersection
            Crossing point. Its coordinates are infinite if the wires cannot
            cross, and its TPC is invalid unless the crossing is within both
            wires.
        """
        intersection = WireIDIntersection()
        if not self._wire_id_intersection_check(wid1, wid2):
            return False, intersection

        start1, end1 = self.wire_end_points(wid1)
        start2, end2 = self.wire_end_points(wid2)
        segments = (
            start1[1], start1[2], end1[1], end1[2],
            start2[1], start2[2], end2[1], end2[2],
        )  # fmt: skip

        cross, y, z = intersect_lines(*segments)
        if not cross:
            return False, intersection

        within = point_within_segments(*segments, y, z)
        intersection.y, intersection.z = float(y), float(z)
        intersection.tpc = wid1.as_tpc_id() if within else TPCID()

        return bool(within), intersection

    def wire_ids_intersect_3d(
        self, wid1: WireID, wid2: WireID
    ) -> Tuple[bool, np.ndarray]:
        """Computes the 3D point where two wires come closest.

        Parameters
        ----------
        wid1 : WireID
            Identifier of the first wire
        wid2 : WireID
            Identifier of the second wire

        Returns
        -------
        bool
            Whether the closest points are within the length of both wires
        np.ndarray
            (3) Midpoint of the closest approach (infinite if the wires
            cannot cross)
        """
        if not self._wire_id_intersection_check(wid1, wid2):
            return False, np.full(3, np.inf)

        wire1, wire2 = self.wire(wid1), self.wire(wid2)
        point, offset1, offset2 = wires_intersection_and_offsets(
            np.ascontiguousarray(wire1.center, dtype=np.float64),
            np.ascontiguousarray(wire1.direction, dtype=np.float64),
            np.ascontiguousarray(wire2.center, dtype=np.float64),
            np.ascontiguousarray(wire2.direction, dtype=np.float64),
        )
        within = abs(offset1) <= wire1.half_length and abs(offset2) <= wire2.half_length

        return bool(within), point

    def intersection_point(self, wid1: WireID, wid2: WireID):
        """Crossing point of two wires in the (y, z) projection.

        Returns
        -------
        bool
            Whether the crossing point is within the length of both wires
        float
            y coordinate of the crossing
        float
            z coordinate of the crossing
        """
        found, intersection = self.wire_ids_intersect(wid1, wid2)
        return found, intersection.y, intersection.z

    def channels_intersect(self, channel1: int, channel2: int):
        """Crossing point of the wires of two channels (see
        :meth:`intersection_point`). Channels must be read by a single wire."""
        wires = []
        for i, channel in enumerate((channel1, channel2)):
            channel_wires = self.channel_to_wire(channel)
            if len(channel_wires) != 1:
                logger.error(
                    "Channel %d (%d) maps to %d wires, need exactly one.",
                    i + 1,
                    channel,
                    len(channel_wires),
                )
                return False, np.inf, np.inf
            wires.append(channel_wires[0])

        return self.intersection_point(*wires)

    # Multi-view algebra
    def third_plane(self, pid1: PlaneID, pid2: PlaneID) -> PlaneID:
        """Finds the plane of a three-plane TPC which is neither of two.

        Parameters
        ----------
        pid1 : PlaneID
            First plane
        pid2 : PlaneID
            Second plane

        Returns
        -------
        PlaneID
            Third plane of the TPC of `pid1`
        """
        num_planes = self.num_planes(pid1.as_tpc_id())
        if num_planes != 3:
            raise InvalidInputError(
                "Third plane search only supports TPCs with 3 planes, "
                f"TPC {pid1.as_tpc_id()} has {num_planes}."
            )

        target = None
        for p in range(num_planes):
            if p in (pid1.plane, pid2.plane):
                continue
            if target is not None:
                raise InvalidInputError(
                    f"Found too many planes that are neither {pid1} nor {pid2} "
                    f"(first {target}, then {p})."
                )
            target = p

        if target is None:
            raise InvalidInputError(f"No plane is neither {pid1} nor {pid2}.")

        return PlaneID(pid1.as_tpc_id(), target)

    def _check_independent_planes(self, pid1: PlaneID, pid2: PlaneID, caller: str):
        if pid1.as_tpc_id() != pid2.as_tpc_id():
            raise InvalidInputError(
                f"{caller} needs two planes on the same TPC (got {pid1} and {pid2})."
            )
        if pid1.plane == pid2.plane:
            raise InvalidInputError(
                f"{caller} needs two different planes (got {pid1} twice)."
            )

    def third_plane_slope(
        self,
        pid1: PlaneID,
        slope1: float,
        pid2: PlaneID,
        slope2: float,
        output_plane: Optional[PlaneID] = None,
    ) -> float:
        """Slope in a third plane from the slopes in two planes.

        Parameters
        ----------
        pid1 : PlaneID
            First plane
        slope1 : float
            Slope (as a ratio of distances) in the first plane
        pid2 : PlaneID
            Second plane
        slope2 : float
            Slope in the second plane
        output_plane : PlaneID, optional
            Target plane (the third plane of the TPC by default)

        Returns
        -------
        float
            Slope in the target plane
        """
        self._check_independent_planes(pid1, pid2, "third_plane_slope")
        if output_plane is None:
            output_plane = self.third_plane(pid1, pid2)

        return compute_third_plane_slope(
            self.plane(pid1).phi_z,
            slope1,
            self.plane(pid2).phi_z,
            slope2,
            self.plane(output_plane).phi_z,
        )

    def third_plane_dtdw(
        self,
        pid1: PlaneID,
        dtdw1: float,
        pid2: PlaneID,
        dtdw2: float,
        output_plane: Optional[PlaneID] = None,
    ) -> float:
        """dT/dW slope in a third plane from the slopes in two planes (see
        :meth:`third_plane_slope`)."""
        self._check_independent_planes(pid1, pid2, "third_plane_dtdw")
        if output_plane is None:
            output_plane = self.third_plane(pid1, pid2)

        planes = [self.plane(pid) for pid in (pid1, pid2, output_plane)]
        return compute_third_plane_dtdw(
            planes[0].phi_z,
            planes[0].wire_pitch,
            dtdw1,
            planes[1].phi_z,
            planes[1].wire_pitch,
            dtdw2,
            planes[2].phi_z,
            planes[2].wire_pitch,
        )

    compute_third_plane_slope = staticmethod(compute_third_plane_slope)
    compute_third_plane_dtdw = staticmethod(compute_third_plane_dtdw)

    # World volume and materials
    def world_volume(self):
        """Returns the node of the world volume."""
        path = [self.root] if self.root is not None else []
        if not path or not find_first_volume(self.world_volume_name, path):
            raise GeometryNotFoundError(
                f"Can't find the world volume '{self.world_volume_name}'."
            )

        return path[-1]

    def world_box(self) -> Box:
        """Box of the world volume."""
        world = self.world_volume()
        transform = LocalTransformation(world.matrix)
        return Box.from_transform(transform, world.volume.shape.half_sizes)

    def _locate(self, point: np.ndarray) -> List:
        """Path to the deepest node containing a point (empty if the point
        is outside of the top node)."""
        point = np.asarray(point, dtype=float)
        path = [self.root]
        matrix = self.root.matrix
        if not self.root.volume.shape.contains(_to_local(matrix, point)):
            return []

        found = True
        while found:
            found = False
            node = path[-1]
            for i in range(node.num_daughters):
                daughter = node.daughter(i)
                daughter_matrix = matrix @ daughter.matrix
                local = _to_local(daughter_matrix, point)
                if daughter.volume.shape.contains(local):
                    path.append(daughter)
                    matrix = daughter_matrix
                    found = True
                    break

        return path

    def volume_name(self, point: np.ndarray) -> str:
        """Name of the deepest volume containing a point.

        Returns
        -------
        str
            Name of the volume, `'unknownVolume'` if the point is outside of
            the world
        """
        path = self._locate(point) if self.root is not None else []
        if not path:
            logger.warning("Point %s is outside of the world volume.", point)
            return "unknownVolume"

        return path[-1].volume.name

    def material(self, point: np.ndarray):
        """Material at a point (`None` if the point is outside of the world)."""
        path = self._locate(point) if self.root is not None else []
        return path[-1].volume.material if path else None

    def material_name(self, point: np.ndarray) -> str:
        """Name of the material at a point.

        Returns
        -------
        str
            Name of the material, `'unknownMaterial'` if it is unknown
        """
        material = self.material(point)
        if material is None:
            logger.warning("No material found at %s.", point)
            return "unknownMaterial"

        return material.name

    def find_detector_enclosure(self, name: str = "volDetEnclosure") -> List:
        """Path to the detector enclosure node (empty if not found)."""
        path = [self.root] if self.root is not None else []
        if not path or not find_first_volume(name, path):
            return []

        return path

    def detector_enclosure_box(self, name: str = "volDetEnclosure") -> Box:
        """Box of the detector enclosure volume.

        Parameters
        ----------
        name : str, default 'volDetEnclosure'
            Name (prefix) of the detector enclosure node

        Returns
        -------
        Box
            World box of the detector enclosure
        """
        path = self.find_detector_enclosure(name)
        if not path:
            raise GeometryNotFoundError(f"Can't find the volume '{name}'.")

        shape = path[-1].volume.shape
        if not isinstance(shape, BoxShape):
            raise GeometryError(f"Volume '{name}' is not a box.")

        transform = LocalTransformation.from_path(path)
        return Box.from_transform(transform, shape.half_sizes)

    def find_all_volumes(self, names) -> List:
        """All the nodes whose volume name is in a set of names."""
        return collect_nodes_by_name(self.root, names)

    def find_all_volume_paths(self, names) -> List[List]:
        """Paths to all the nodes whose volume name is in a set of names."""
        return collect_paths_by_name(self.root, names)

    def total_mass(self, volume_name: Optional[str] = None) -> float:
        """Mass of a volume and of all its daughters, in grams.

        Parameters
        ----------
        volume_name : str, optional
            Name of the volume (world volume by default)

        Returns
        -------
        float
            Mass of the volume
        """
        volume_name = volume_name or self.world_volume_name
        nodes = collect_nodes_by_name(self.root, [volume_name])
        if not nodes:
            raise GeometryNotFoundError(f"Can't find the volume '{volume_name}'.")

        return nodes[0].volume.weight()

    # Optical detectors
    def op_det_geo_name(self, cryostat_id: Optional[CryostatID] = None) -> str:
        """Name of the optical detector volumes of a cryostat."""
        return self.cryostat(cryostat_id).opdet_name

    def op_det_from_cryo(self, opdet: int, cryostat: int) -> int:
        """Global number of an optical detector from its number in a cryostat.

        Parameters
        ----------
        opdet : int
            Number of the optical detector in the cryostat
        cryostat : int
            Number of the cryostat

        Returns
        -------
        int
            Global number of the optical detector
        """
        cryo = self.cryostat(CryostatID(cryostat))
        if not 0 <= opdet < cryo.num_op_dets:
            raise GeometryNotFoundError(
                f"Optical detector {opdet} does not exist in cryostat {cryo.id} "
                f"({cryo.num_op_dets} detectors)."
            )

        return self._opdet_offsets[cryostat] + opdet

    def op_det_geo_from_op_det(self, opdet: int) -> OpDetGeo:
        """Returns an optical detector from its global number."""
        if not 0 <= opdet < self.num_op_dets:
            raise GeometryNotFoundError(
                f"Optical detector {opdet} does not exist ({self.num_op_dets} "
                "detectors)."
            )

        cryostat = bisect_right(self._opdet_offsets, opdet) - 1
        return self.cryostats[cryostat].op_det(opdet - self._opdet_offsets[cryostat])

    def op_det_geo_from_op_channel(self, op_channel: int) -> OpDetGeo:
        """Returns the optical detector of an optical channel."""
        return self.op_det_geo_from_op_det(self.op_det_from_op_channel(op_channel))

    def get_closest_op_det(self, point: np.ndarray) -> int:
        """Global number of the optical detector closest to a point.

        Only the detectors of the cryostat containing the point are
        considered.

        Returns
        -------
        int
            Global number of the closest optical detector,
            :data:`INVALID_INDEX` if no cryostat contains the point
        """
        cryo = self.find_cryostat_at_position(point)
        if cryo is None:
            return INVALID_INDEX

        opdet = cryo.get_closest_op_det(point)
        if opdet == INVALID_INDEX:
            return INVALID_INDEX

        return self.op_det_from_cryo(opdet, cryo.id.cryostat)

    def num_op_channels(self) -> int:
        """Number of optical channels."""
        return self._check_channel_map().num_op_channels(self.num_op_dets)

    def max_op_channel(self) -> int:
        """Largest optical channel number, plus one."""
        return self._check_channel_map().max_op_channel(self.num_op_dets)

    def num_op_hardware_channels(self, opdet: int) -> int:
        """Number of hardware channels of an optical detector."""
        return self._check_channel_map().num_op_hardware_channels(opdet)

    def op_channel(self, opdet: int, hardware_channel: int = 0) -> int:
        """Optical channel of a hardware channel of an optical detector."""
        return self._check_channel_map().op_channel(opdet, hardware_channel)

    def op_det_from_op_channel(self, op_channel: int) -> int:
        """Optical detector of an optical channel."""
        return self._check_channel_map().op_det_from_op_channel(op_channel)

    def hardware_channel_from_op_channel(self, op_channel: int) -> int:
        """Hardware channel of an optical channel within its detector."""
        return self._check_channel_map().hardware_channel_from_op_channel(op_channel)

    def is_valid_op_channel(self, op_channel: int) -> bool:
        """Whether an optical channel exists."""
        return self._check_channel_map().is_valid_op_channel(
            op_channel, self.num_op_dets
        )

    # Readout channels
    def num_channels(self, ropid: Optional[ROPID] = None) -> int:
        """Number of channels (in the whole detector, or in a readout plane)."""
        return self._check_channel_map().num_channels(ropid)

    def has_channel(self, channel: int) -> bool:
        """Whether a channel exists."""
        return self._check_channel_map().has_channel(channel)

    def channels_in_tpcs(self, tpc_id: Optional[TPCID] = None) -> List[int]:
        """Sorted list of the channels of the wires of a TPC (or of all TPCs)."""
        channel_map = self._check_channel_map()
        channels = {
            channel_map.plane_wire_to_channel(wire.id)
            for wire in self.iterate("wire", tpc_id)
        }

        return sorted(channels - {INVALID_CHANNEL})

    def channel_to_wire(self, channel: int) -> List[WireID]:
        """Wires read by a channel (empty for an invalid channel)."""
        return self._check_channel_map().channel_to_wire(channel)

    def channel_to_rop(self, channel: int) -> ROPID:
        """Readout plane of a channel."""
        return self._check_channel_map().channel_to_rop(channel)

    def plane_wire_to_channel(self, wire_id: WireID) -> int:
        """Channel reading a wire."""
        return self._check_channel_map().plane_wire_to_channel(wire_id)

    def signal_type(self, item: Union[int, PlaneID, ROPID]) -> SignalType:
        """Type of signal of a channel, a wire plane or a readout plane.

        Raises
        ------
        GeometryNotFoundError
            If a wire plane is not in any readout plane
        """
        channel_map = self._check_channel_map()
        if isinstance(item, ROPID):
            return channel_map.signal_type_for_rop(item)

        if isinstance(item, PlaneID):
            ropid = channel_map.wire_plane_to_rop(item)
            if not ropid:
                raise GeometryNotFoundError(
                    f"Plane {item} is not in any readout plane."
                )
            return channel_map.signal_type_for_rop(ropid)

        return channel_map.signal_type(item)

    def view(self, item: Union[int, PlaneID, ROPID]) -> View:
        """View of a channel, a wire plane or a readout plane (unknown for
        invalid inputs)."""
        channel_map = self._check_channel_map()
        if isinstance(item, ROPID):
            return channel_map.view_for_rop(item)

        if isinstance(item, PlaneID):
            return self.plane(item).view if self.has_plane(item) else View.UNKNOWN

        return channel_map.view(item)

    def num_tpc_sets(self, cryostat_id: Optional[CryostatID] = None) -> int:
        """Number of TPC sets in a cryostat."""
        cryostat_id = cryostat_id if cryostat_id is not None else CryostatID(0)
        return self._check_channel_map().num_tpc_sets(cryostat_id)

    def max_tpc_sets(self) -> int:
        """Largest number of TPC sets in a cryostat."""
        return self._check_channel_map().max_tpc_sets()

    def has_tpc_set(self, tpcset_id: TPCSetID) -> bool:
        """Whether a TPC set exists."""
        return self._check_channel_map().has_tpc_set(tpcset_id)

    def find_tpc_set_at_position(self, point: np.ndarray) -> TPCSetID:
        """TPC set containing a point (invalid if none)."""
        tpc_id = self.find_tpc_at_position(point)
        if not tpc_id:
            return TPCSetID()

        return self.tpc_to_tpc_set(tpc_id)

    def tpc_to_tpc_set(self, tpc_id: TPCID) -> TPCSetID:
        """TPC set of a TPC."""
        return self._check_channel_map().tpc_to_tpc_set(tpc_id)

    def tpc_set_to_tpcs(self, tpcset_id: TPCSetID) -> List[TPCID]:
        """TPCs of a TPC set."""
        return self._check_channel_map().tpc_set_to_tpcs(tpcset_id)

    def num_rops(self, tpcset_id: TPCSetID) -> int:
        """Number of readout planes in a TPC set."""
        return self._check_channel_map().num_rops(tpcset_id)

    def max_rops(self) -> int:
        """Largest number of readout planes in a TPC set."""
        return self._check_channel_map().max_rops()

    def has_rop(self, ropid: ROPID) -> bool:
        """Whether a readout plane exists."""
        return self._check_channel_map().has_rop(ropid)

    def wire_plane_to_rop(self, plane_id: PlaneID) -> ROPID:
        """Readout plane of a wire plane."""
        return self._check_channel_map().wire_plane_to_rop(plane_id)

    def rop_to_wire_planes(self, ropid: ROPID) -> List[PlaneID]:
        """Wire planes of a readout plane."""
        return self._check_channel_map().rop_to_wire_planes(ropid)

    def rop_to_tpcs(self, ropid: ROPID) -> List[TPCID]:
        """TPCs of the wire planes of a readout plane."""
        return self._check_channel_map().rop_to_tpcs(ropid)

    def first_channel_in_rop(self, ropid: ROPID) -> int:
        """First channel of a readout plane."""
        return self._check_channel_map().first_channel_in_rop(ropid)

    def channel_to_aux_det(self, name: str, channel: int) -> AuxDetGeo:
        """Auxiliary detector of a given name (read by a channel)."""
        index = self._check_channel_map().channel_to_aux_det(
            self.aux_dets, name, channel
        )
        return self.aux_dets[index]

    def channel_to_aux_det_sensitive(
        self, name: str, channel: int
    ) -> AuxDetSensitiveGeo:
        """Sensitive volume of an auxiliary detector read by a channel."""
        ad, sv = self._check_channel_map().channel_to_sensitive_aux_det(
            self.aux_dets, name, channel
        )
        return self.aux_det_sensitive(ad, sv)

    # Printout
    def info(self, indent: str = "  ", verbosity: int = 1) -> str:
        """Describes the whole geometry.

        Parameters
        ----------
        indent : str, default '  '
            Indentation unit of the nested elements
        verbosity : int, default 1
            Amount of information for each element

        Returns
        -------
        str
            Description of the geometry
        """
        lines = [
            f"Detector {self.name} (tag: {self.tag}, version: {self.version}) "
            f"has {self.num_cryostats} cryostat(s) and {self.num_aux_dets} "
            "auxiliary detector(s):"
        ]
        for cryo in self.cryostats:
            lines.append(indent + cryo.cryostat_info(indent * 2, verbosity))
            for tpc in cryo.tpcs:
                lines.append(indent * 2 + tpc.tpc_info(indent * 3, verbosity))
                for plane in tpc.planes:
                    lines.append(indent * 3 + plane.plane_info(indent * 4, verbosity))
        for i, aux_det in enumerate(self.aux_dets):
            lines.append(
                f"{indent}auxiliary detector #{i} ({aux_det.name}) with "
                f"{aux_det.num_sensitive} sensitive volume(s)"
            )

        return "\n".join(lines)


def _to_local(matrix: np.ndarray, point: np.ndarray) -> np.ndarray:
    """Transforms a world point into the frame of a local-to-world matrix."""
    rotation, translation = matrix[:3, :3], matrix[:3, 3]
    return np.linalg.solve(rotation, point - translation)
