"""Wire plane geometry and its coordinate systems.

A plane holds an ordered set of parallel wires and provides two
decompositions of the 3D space:
- the wire basis: `(wire direction, increasing wire direction, normal)`,
  with its reference point at the center of the first wire;
- the frame basis: `(width, depth, normal)`, derived from the box shape of
  the plane only, with its reference point at the plane center.

Both are right-handed orthonormal triples, and they share the same normal,
which points toward the inside of the TPC the plane belongs to.
"""

from typing import List, Optional, Tuple, Union

import numpy as np

from wiregeo.utils.logger import logger

from ..decomposer import DecomposedVector, PlaneDecomposer
from ..enums import Orientation, View, orientation_name, view_name
from ..errors import GeometryNotFoundError
from ..ids import PlaneID, WireID
from .base import Box
from .wire import WireGeo

__all__ = ["PlaneGeo"]

# Tolerance on the components of unit vectors
DIRECTION_TOLERANCE = 1e-4


class PlaneGeo:
    """Geometry of a wire plane.

    Attributes
    ----------
    transform : LocalTransformation
        Local-to-world transformation of the plane box
    half_sizes : np.ndarray
        (3) Half dimensions of the plane box in its local frame
    wires : List[WireGeo]
        Ordered list of wires (index is the wire number)
    name : str
        Name of the plane volume
    id : PlaneID
        Identifier of the plane (only valid after sorting)
    view : View
        Coordinate measured by the plane
    orientation : Orientation
        Orientation of the plane
    wire_pitch : float
        Distance between consecutive wires in cm
    center : np.ndarray
        (3) Center of the plane, on the wire plane
    frame_size : np.ndarray
        (2) Width and depth of the plane box
    active_area : np.ndarray
        (2, 2) Lower/upper bounds of the area covered by the wires, along the
        width and depth directions (relative to the center)
    phi_z : float
        Angle of the increasing wire direction from the z axis
    theta_z : float
        Angle of the wires from the z axis
    """

    def __init__(
        self,
        transform,
        half_sizes: np.ndarray,
        wires: List[WireGeo],
        name: str = "",
        tpc_box: Optional[Box] = None,
    ):
        """Initialize the plane and derive its coordinate systems.

        Parameters
        ----------
        transform : LocalTransformation
            Local-to-world transformation of the plane box
        half_sizes : np.ndarray
            (3) Half dimensions of the plane box in its local frame
        wires : List[WireGeo]
            Wires of the plane, in the order provided by the builder
        name : str, default ''
            Name of the plane volume
        tpc_box : Box, optional
            Box of the TPC the plane belongs to, used to orient the normal
        """
        self.transform = transform
        self.half_sizes = np.asarray(half_sizes, dtype=float)
        self.wires = list(wires)
        self.name = name
        self.id = PlaneID()

        self.view = View.UNKNOWN
        self.orientation = Orientation.VERTICAL
        self.wire_pitch = 0.0
        self.center = np.asarray(transform.translation, dtype=float).copy()
        self.frame_size = np.zeros(2)
        self.active_area = np.zeros((2, 2))
        self.phi_z = 0.0
        self.theta_z = 0.0
        self.decomp_wire = PlaneDecomposer()
        self.decomp_frame = PlaneDecomposer()

        # Derive with the provisional wire order (robust pitch)
        self.update_derived(tpc_box, fast_pitch=False)

    @classmethod
    def from_node(cls, node, transform, wires, tpc_box=None) -> "PlaneGeo":
        """Builds a plane from a box-shaped node and its wires.

        Parameters
        ----------
        node : GeoNode
            Plane node
        transform : LocalTransformation
            Local-to-world transformation of the node
        wires : List[WireGeo]
            Wires of the plane
        tpc_box : Box, optional
            Box of the TPC the plane belongs to

        Returns
        -------
        PlaneGeo
            Plane geometry
        """
        half_sizes = node.volume.shape.half_sizes
        return cls(transform, half_sizes, wires, node.volume.name, tpc_box)

    # Element access
    @property
    def num_wires(self) -> int:
        """Number of wires in the plane."""
        return len(self.wires)

    def has_wire(self, index: Union[int, WireID]) -> bool:
        """Whether a wire number exists in this plane."""
        if isinstance(index, WireID):
            index = index.wire
        return 0 <= index < self.num_wires

    def wire(self, index: Union[int, WireID]) -> WireGeo:
        """Returns a wire by number.

        Parameters
        ----------
        index : Union[int, WireID]
            Wire number (or identifier)

        Returns
        -------
        WireGeo
            Requested wire
        """
        if not self.has_wire(index):
            raise GeometryNotFoundError(
                f"Wire {index} does not exist in plane {self.id} "
                f"({self.num_wires} wires)."
            )
        if isinstance(index, WireID):
            index = index.wire

        return self.wires[index]

    @property
    def first_wire(self) -> WireGeo:
        """First wire of the plane."""
        return self.wire(0)

    @property
    def last_wire(self) -> WireGeo:
        """Last wire of the plane."""
        return self.wire(self.num_wires - 1)

    @property
    def middle_wire(self) -> WireGeo:
        """Wire in the middle of the plane."""
        return self.wire(self.num_wires // 2)

    def __len__(self):
        return len(self.wires)

    def __iter__(self):
        return iter(self.wires)

    def __getitem__(self, index):
        return self.wire(index)

    # Directions
    @property
    def normal(self) -> np.ndarray:
        """(3) Unit normal to the plane, pointing inside the TPC."""
        return self.decomp_wire.normal

    @property
    def wire_direction(self) -> np.ndarray:
        """(3) Common direction of the wires."""
        return self.decomp_wire.main

    @property
    def increasing_wire_direction(self) -> np.ndarray:
        """(3) In-plane direction toward wires with higher number."""
        return self.decomp_wire.secondary

    @property
    def width_direction(self) -> np.ndarray:
        """(3) Direction of the width of the plane frame."""
        return self.decomp_frame.main

    @property
    def depth_direction(self) -> np.ndarray:
        """(3) Direction of the depth of the plane frame."""
        return self.decomp_frame.secondary

    @property
    def width(self) -> float:
        """Width of the plane frame in cm."""
        return float(self.frame_size[0])

    @property
    def depth(self) -> float:
        """Depth of the plane frame in cm."""
        return float(self.frame_size[1])

    @property
    def box_center(self) -> np.ndarray:
        """(3) Center of the plane box (not necessarily on the wire plane)."""
        return np.asarray(self.transform.translation, dtype=float)

    def wire_id_increases_with_z(self) -> bool:
        """Whether the wire number increases with the z coordinate."""
        return bool(self.increasing_wire_direction[2] > 0.0)

    def bounding_box(self) -> Box:
        """World-aligned box containing the whole plane box."""
        return Box.from_transform(self.transform, self.half_sizes)

    # Derivation of the plane coordinate systems
    def update_after_sorting(self, plane_id: PlaneID, tpc_box: Box):
        """Sets the final identifier and derives the plane quantities.

        Must be called once the wires are in their final order.

        Parameters
        ----------
        plane_id : PlaneID
            Final identifier of the plane
        tpc_box : Box
            Box of the TPC the plane belongs to
        """
        self.id = plane_id
        self.update_derived(tpc_box, fast_pitch=True)
        for k, wire in enumerate(self.wires):
            wire.update_after_sorting(WireID(plane_id, k))

    def sort_wires(self, sorter):
        """Sorts the wires in place with the provided sorter."""
        sorter.sort_wires(self.wires)

    def update_derived(self, tpc_box: Optional[Box] = None, fast_pitch: bool = True):
        """Derives the plane bases, pitch, active area, angles and view.

        Parameters
        ----------
        tpc_box : Box, optional
            Box of the TPC the plane belongs to, used to orient the normal
        fast_pitch : bool, default True
            Whether to measure the pitch from the first two wires only
        """
        # Frame axes from the box: the thinnest side is along the normal
        box_center = self.box_center
        axes = [self.transform.to_world_vector(e) for e in np.eye(3)]
        axes = [a / np.linalg.norm(a) for a in axes]
        normal_axis = int(np.argmin(self.half_sizes))
        others = [i for i in range(3) if i != normal_axis]
        z_align = [abs(axes[i][2]) for i in others]
        depth_axis = others[int(np.argmax(z_align))]
        width_axis = others[1 - int(np.argmax(z_align))]
        self.frame_size = 2.0 * self.half_sizes[[width_axis, depth_axis]]

        # Normal points toward the center of the TPC
        normal = axes[normal_axis].copy()
        if tpc_box is not None:
            if np.dot(tpc_box.center - box_center, normal) < 0.0:
                normal = -normal

        # Frame basis, right-handed with the same normal
        width_dir = axes[width_axis].copy()
        depth_dir = axes[depth_axis].copy()
        if np.dot(np.cross(width_dir, depth_dir), normal) < 0.0:
            width_dir = -width_dir

        # Wire basis
        if self.num_wires > 0:
            first = self.wires[0]
            secondary = np.cross(normal, first.direction)
            secondary /= np.linalg.norm(secondary)
            if self.num_wires > 1:
                if np.dot(self.wires[-1].center - first.center, secondary) < 0.0:
                    secondary = -secondary
        else:
            secondary = np.cross(normal, depth_dir)

        main = np.cross(secondary, normal)
        for wire in self.wires:
            if np.dot(wire.direction, main) < 0.0:
                wire.flip()

        # Pitch
        self.wire_pitch = self._compute_pitch(secondary, fast_pitch)

        # Center of the plane, on the wire plane
        if self.num_wires > 0:
            reference = self.wires[0].center
            offset = np.dot(box_center - reference, normal)
            self.center = box_center - offset * normal
        else:
            reference = box_center
            self.center = box_center.copy()

        self.decomp_wire = PlaneDecomposer(reference, main, secondary, normal)
        self.decomp_frame = PlaneDecomposer(self.center, width_dir, depth_dir, normal)

        # Active area and angles
        self.active_area = self._compute_active_area()
        self.phi_z = float(np.arctan2(secondary[1], secondary[2]))
        self.theta_z = self.middle_wire.theta_z if self.num_wires > 0 else 0.0

        # Classification
        self.view = self._classify_view()
        self.orientation = self._classify_orientation()

    def _compute_pitch(self, secondary: np.ndarray, fast: bool) -> float:
        """Measures the distance between consecutive wires.

        Parameters
        ----------
        secondary : np.ndarray
            (3) Increasing wire direction
        fast : bool
            Whether to use the first two wires only

        Returns
        -------
        float
            Wire pitch (0 with fewer than two wires)
        """
        if self.num_wires < 2:
            return 0.0

        first, second = self.wires[0], self.wires[1]
        if fast and first.is_parallel_to(second):
            pitch = second.distance_from(first)
            if pitch > 1e-9:
                return pitch

        # Span of the wire centers along the increasing wire direction
        proj = [np.dot(w.center - first.center, secondary) for w in self.wires]
        return float((max(proj) - min(proj)) / (self.num_wires - 1))

    def _compute_active_area(self) -> np.ndarray:
        """Computes the area covered by the wires, in the frame basis.

        Returns
        -------
        np.ndarray
            (2, 2) Lower/upper bounds along the width and depth directions
        """
        if self.num_wires == 0:
            return np.zeros((2, 2))

        ends = [w.start for w in self.wires] + [w.end for w in self.wires]
        proj = np.array([self.decomp_frame.project_point_on_plane(p) for p in ends])
        lower = proj.min(axis=0) + self.wire_pitch / 2.0
        upper = proj.max(axis=0) - self.wire_pitch / 2.0

        # Collapse the ranges which would invert
        mid = (lower + upper) / 2.0
        inverted = lower > upper
        lower[inverted] = mid[inverted]
        upper[inverted] = mid[inverted]

        return np.stack((lower, upper), axis=1)

    def _classify_view(self) -> View:
        """Assigns the view from the normal and wire directions."""
        normal, wire_dir = self.normal, self.wire_direction
        dx, dy, dz = (abs(c) < DIRECTION_TOLERANCE for c in wire_dir)
        if abs(abs(normal[0]) - 1.0) < DIRECTION_TOLERANCE:
            if dz:
                return View.Z
            if dy:
                return View.Y
            return View.U if wire_dir[1] * wire_dir[2] > 0.0 else View.V

        if abs(abs(normal[1]) - 1.0) < DIRECTION_TOLERANCE:
            if dz:
                return View.Z
            if dx:
                return View.X
            return View.U if wire_dir[0] * wire_dir[2] > 0.0 else View.V

        return View.UNKNOWN

    def _classify_orientation(self) -> Orientation:
        """Assigns the orientation from the normal direction."""
        if int(np.argmax(np.abs(self.normal))) == 1:
            return Orientation.HORIZONTAL

        return Orientation.VERTICAL

    # Coordinate transformations
    def to_world_coords(self, local: np.ndarray) -> np.ndarray:
        """Transforms a point from the plane local frame to the world."""
        return self.transform.to_world_coords(local)

    def to_local_coords(self, world: np.ndarray) -> np.ndarray:
        """Transforms a point from the world to the plane local frame."""
        return self.transform.to_local_coords(world)

    def to_world_vector(self, local: np.ndarray) -> np.ndarray:
        """Transforms a vector from the plane local frame to the world."""
        return self.transform.to_world_vector(local)

    def to_local_vector(self, world: np.ndarray) -> np.ndarray:
        """Transforms a vector from the world to the plane local frame."""
        return self.transform.to_local_vector(world)

    # Distance from the plane
    def distance_from_plane(self, point: np.ndarray) -> float:
        """Signed distance of a point from the wire plane.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        float
            Distance, positive on the side the normal points to
        """
        return self.decomp_wire.point_normal_component(point)

    def drift_point(self, point: np.ndarray, distance: Optional[float] = None):
        """Shifts a point along the drift direction (opposite to the normal).

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates
        distance : float, optional
            Distance to drift the point by. By default, the point is drifted
            onto the wire plane.

        Returns
        -------
        np.ndarray
            (3) Drifted point
        """
        if distance is None:
            distance = self.distance_from_plane(point)

        return np.asarray(point, dtype=float) - distance * self.normal

    # Wire basis
    def decompose_point(self, point: np.ndarray) -> DecomposedVector:
        """Decomposes a point on the wire basis (see :class:`PlaneDecomposer`)."""
        return self.decomp_wire.decompose_point(point)

    def decompose_vector(self, vector: np.ndarray) -> DecomposedVector:
        """Decomposes a vector on the wire basis."""
        return self.decomp_wire.decompose_vector(vector)

    def projection(self, point: np.ndarray) -> np.ndarray:
        """Projection of a point on the wire plane, as (wire, increasing wire)
        coordinates relative to the center of the first wire."""
        return self.decomp_wire.project_point_on_plane(point)

    def vector_projection(self, vector: np.ndarray) -> np.ndarray:
        """Projection of a vector on the wire plane."""
        return self.decomp_wire.project_vector_on_plane(vector)

    def compose_point(self, projection, distance: float = 0.0) -> np.ndarray:
        """Builds a point from its wire basis projection and distance."""
        return self.decomp_wire.compose_point(projection, distance)

    def compose_vector(self, projection, distance: float = 0.0) -> np.ndarray:
        """Builds a vector from its wire basis projection and normal component."""
        return self.decomp_wire.compose_vector(projection, distance)

    # Frame basis
    def decompose_point_width_depth(self, point: np.ndarray) -> DecomposedVector:
        """Decomposes a point on the frame basis, relative to the center."""
        return self.decomp_frame.decompose_point(point)

    def point_width_depth_projection(self, point: np.ndarray) -> np.ndarray:
        """(2) Width and depth coordinates of a point, relative to the center."""
        return self.decomp_frame.project_point_on_plane(point)

    def vector_width_depth_projection(self, vector: np.ndarray) -> np.ndarray:
        """(2) Width and depth components of a vector."""
        return self.decomp_frame.project_vector_on_plane(vector)

    def compose_point_width_depth(self, projection, distance: float = 0.0):
        """Builds a point from its width/depth projection and distance."""
        return self.decomp_frame.compose_point(projection, distance)

    # Frame area
    def _delta_from_area(self, proj, area, wmargin, dmargin) -> np.ndarray:
        margins = np.array([wmargin, dmargin])
        lower = area[:, 0] + margins
        upper = area[:, 1] - margins
        proj = np.asarray(proj, dtype=float)

        return np.where(proj < lower, lower - proj, 0.0) + np.where(
            proj > upper, upper - proj, 0.0
        )

    def delta_from_plane(
        self, proj, wmargin: float = 0.0, dmargin: Optional[float] = None
    ) -> np.ndarray:
        """Displacement which brings a width/depth projection on the plane.

        Parameters
        ----------
        proj : np.ndarray
            (2) Width and depth projection
        wmargin : float, default 0.
            Margin to bring the projection inside the plane along the width
        dmargin : float, optional
            Margin along the depth (same as `wmargin` if not specified)

        Returns
        -------
        np.ndarray
            (2) Displacement, null if the projection is already on the plane
        """
        dmargin = wmargin if dmargin is None else dmargin
        half = self.frame_size / 2.0
        area = np.stack((-half, half), axis=1)

        return self._delta_from_area(proj, area, wmargin, dmargin)

    def delta_from_active_plane(
        self, proj, wmargin: float = 0.0, dmargin: Optional[float] = None
    ) -> np.ndarray:
        """Displacement which brings a width/depth projection on the active
        area of the plane (see :meth:`delta_from_plane`)."""
        dmargin = wmargin if dmargin is None else dmargin

        return self._delta_from_area(proj, self.active_area, wmargin, dmargin)

    def is_projection_on_plane(self, point: np.ndarray) -> bool:
        """Whether the projection of a point falls within the plane frame."""
        proj = self.point_width_depth_projection(point)
        return not np.any(self.delta_from_plane(proj))

    def move_projection_to_plane(self, proj) -> np.ndarray:
        """Moves a width/depth projection onto the active area, if needed."""
        return np.asarray(proj, dtype=float) + self.delta_from_active_plane(proj)

    def move_point_over_plane(self, point: np.ndarray) -> np.ndarray:
        """Moves a point so that its projection is on the active area.

        The distance from the plane is preserved.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        np.ndarray
            (3) Moved point
        """
        decomposed = self.decompose_point_width_depth(point)
        proj = self.move_projection_to_plane(decomposed.projection)

        return self.compose_point_width_depth(proj, decomposed.distance)

    # Wire coordinate
    def plane_coordinate(self, point: np.ndarray) -> float:
        """Coordinate of a point along the increasing wire direction, in cm,
        relative to the first wire."""
        return self.decomp_wire.point_secondary_component(point)

    def plane_coordinate_from(self, point: np.ndarray, wire: WireGeo) -> float:
        """Coordinate of a point along the increasing wire direction, in cm,
        relative to a given wire."""
        return self.plane_coordinate(point) - self.plane_coordinate(wire.center)

    def wire_coordinate(self, point: np.ndarray) -> float:
        """Coordinate of a point along the increasing wire direction, in units
        of wire pitch (a point on wire `k` has coordinate `k`)."""
        if self.wire_pitch <= 0.0:
            return 0.0

        return self.plane_coordinate(point) / self.wire_pitch

    def nearest_wire_index(self, point: np.ndarray) -> Tuple[int, bool]:
        """Finds the number of the wire closest to a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        int
            Number of the closest wire, clamped to the existing wires
        bool
            Whether the unclamped closest wire number exists
        """
        if self.num_wires == 0:
            return 0, False

        index = int(np.rint(self.wire_coordinate(point)))
        in_range = 0 <= index < self.num_wires
        clamped = min(max(index, 0), self.num_wires - 1)

        return clamped, in_range

    def nearest_wire_id(self, point: np.ndarray) -> WireID:
        """Identifier of the wire closest to a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        WireID
            Identifier of the closest wire, marked invalid if the point is
            beyond the first or last wire (the wire number is clamped)
        """
        index, in_range = self.nearest_wire_index(point)
        wire_id = WireID(self.id, index)

        return wire_id if in_range else wire_id.mark_invalid()

    def nearest_wire(self, point: np.ndarray) -> WireGeo:
        """Wire closest to a point (clamped to the existing wires)."""
        index, in_range = self.nearest_wire_index(point)
        if self.num_wires == 0:
            raise GeometryNotFoundError(f"Plane {self.id} has no wire.")
        if not in_range:
            logger.warning(
                "Point %s is outside of plane %s, using wire %d.", point, self.id, index
            )

        return self.wires[index]

    def closest_wire_id(self, wire: Union[int, WireID]) -> WireID:
        """Clamps a wire number to the wires of this plane.

        Parameters
        ----------
        wire : Union[int, WireID]
            Wire number, or wire identifier

        Returns
        -------
        WireID
            Identifier of the closest existing wire, invalid if the plane
            has no wire. A wire identifier from another plane is returned
            unchanged, marked as invalid.
        """
        if isinstance(wire, WireID):
            if wire.as_plane_id() != self.id:
                return wire.mark_invalid()
            wire = wire.wire
        if self.num_wires == 0:
            return WireID(self.id, 0).mark_invalid()

        return WireID(self.id, min(max(int(wire), 0), self.num_wires - 1))

    def inter_wire_projected_distance(self, projection) -> float:
        """Distance between consecutive wires along a direction on the plane.

        Parameters
        ----------
        projection : np.ndarray
            (2) Direction, as (wire, increasing wire) components

        Returns
        -------
        float
            Distance along the direction; infinite if parallel to the wires
        """
        proj = np.asarray(projection, dtype=float)
        cos = abs(proj[1]) / np.linalg.norm(proj)
        if cos == 0.0:
            return np.inf

        return float(self.wire_pitch / cos)

    def inter_wire_distance(self, direction: np.ndarray) -> float:
        """Distance between consecutive wires along a 3D direction, once
        projected on the plane.

        Parameters
        ----------
        direction : np.ndarray
            (3) Direction

        Returns
        -------
        float
            Distance along the direction; infinite if parallel to the wires
        """
        direction = np.asarray(direction, dtype=float)
        cos = abs(np.dot(direction, self.increasing_wire_direction))
        cos /= np.linalg.norm(direction)
        if cos == 0.0:
            return np.inf

        return float(self.wire_pitch / cos)

    def plane_info(self, indent: str = "", verbosity: int = 1) -> str:
        """Describes the plane.

        Parameters
        ----------
        indent : str, default ''
            Indentation of the lines after the first one
        verbosity : int, default 1
            Amount of information, from 0 (identifier only) to 4

        Returns
        -------
        str
            Description of the plane
        """
        out = f"plane {self.id}"
        if verbosity <= 0:
            return out

        out += f" at {self.center.tolist()} cm, theta: {self.theta_z:.6g} rad"
        if verbosity <= 1:
            return out

        out += (
            f"\n{indent}normal to wire: {self.phi_z:.6g} rad, with orientation "
            f"{orientation_name(self.orientation)}, has {self.num_wires} wires "
            f"measuring {view_name(self.view)} with a wire pitch of "
            f"{self.wire_pitch:.6g} cm"
        )
        if verbosity <= 2:
            return out

        trend = "increases" if self.wire_id_increases_with_z() else "decreases"
        out += (
            f"\n{indent}normal to plane: {self.normal.tolist()}, direction of "
            f"increasing wire number: {self.increasing_wire_direction.tolist()} "
            f"({trend} with z)"
        )
        if verbosity <= 3:
            return out

        out += (
            f"\n{indent}wire direction: {self.wire_direction.tolist()}; width "
            f"{self.width:.6g} cm in direction: {self.width_direction.tolist()}, "
            f"depth {self.depth:.6g} cm in direction: "
            f"{self.depth_direction.tolist()}"
            f"\n{indent}active area: width {self.active_area[0].tolist()}, "
            f"depth {self.active_area[1].tolist()}"
        )

        return out

    def __repr__(self):
        view = view_name(self.view)
        return f"PlaneGeo(id={self.id}, view={view}, wires={self.num_wires})"
