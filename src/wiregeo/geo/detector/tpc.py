"""TPC geometry description."""

from typing import List, Optional, Union

import numpy as np

from ..enums import View, view_name
from ..errors import GeometryNotFoundError
from ..ids import PlaneID, TPCID
from .base import Box
from .plane import PlaneGeo

__all__ = ["TPCGeo"]


class TPCGeo(Box):
    """Class which holds all properties of an individual time-projection
    chamber (TPC) and of its wire planes.

    The box of the TPC (inherited from :class:`Box`) is its total volume.

    Attributes
    ----------
    transform : LocalTransformation
        Local-to-world transformation of the TPC
    planes : List[PlaneGeo]
        Ordered list of wire planes (index is the plane number)
    active_box : Box
        Box of the active (sensitive) volume of the TPC
    name : str
        Name of the TPC volume
    id : TPCID
        Identifier of the TPC (only valid after sorting)
    drift_dir : np.ndarray
        (3) TPC drift direction vector (normalized, toward the planes)
    drift_axis : int
        Axis along which the electrons drift (0, 1 or 2)
    """

    def __init__(
        self,
        transform,
        half_sizes: np.ndarray,
        planes: List[PlaneGeo],
        name: str = "",
        active_box: Optional[Box] = None,
    ):
        """Initialize the TPC object.

        Parameters
        ----------
        transform : LocalTransformation
            Local-to-world transformation of the TPC
        half_sizes : np.ndarray
            (3) Half dimensions of the TPC box in its local frame
        planes : List[PlaneGeo]
            Wire planes of the TPC
        name : str, default ''
            Name of the TPC volume
        active_box : Box, optional
            Box of the active volume. Same as the total box if not provided.
        """
        # Initialize the underlying box object
        box = Box.from_transform(transform, np.asarray(half_sizes, dtype=float))
        super().__init__(box.lower, box.upper)

        # Store the TPC properties
        self.transform = transform
        self.half_sizes = np.asarray(half_sizes, dtype=float)
        self.planes = list(planes)
        self.name = name
        self.active_box = active_box if active_box is not None else box
        self.id = TPCID()

        self.drift_dir = np.zeros(3)
        self.drift_axis = 0
        self.update_drift()

    # Element access
    @property
    def num_planes(self) -> int:
        """Number of wire planes in the TPC."""
        return len(self.planes)

    def has_plane(self, index: Union[int, PlaneID]) -> bool:
        """Whether a plane number exists in this TPC."""
        if isinstance(index, PlaneID):
            index = index.plane
        return 0 <= index < self.num_planes

    def plane(self, index: Union[int, PlaneID]) -> PlaneGeo:
        """Returns a plane by number.

        Parameters
        ----------
        index : Union[int, PlaneID]
            Plane number (or identifier)

        Returns
        -------
        PlaneGeo
            Requested plane
        """
        if not self.has_plane(index):
            raise GeometryNotFoundError(
                f"Plane {index} does not exist in TPC {self.id} "
                f"({self.num_planes} planes)."
            )
        if isinstance(index, PlaneID):
            index = index.plane

        return self.planes[index]

    def plane_by_view(self, view: View) -> PlaneGeo:
        """Returns the first plane measuring a given view.

        Parameters
        ----------
        view : View
            Requested view

        Returns
        -------
        PlaneGeo
            First plane with the requested view
        """
        for plane in self.planes:
            if plane.view == view:
                return plane

        raise GeometryNotFoundError(
            f"TPC {self.id} has no plane with view {view_name(view)}."
        )

    @property
    def views(self) -> set:
        """Set of views measured by the planes of the TPC."""
        return {plane.view for plane in self.planes}

    @property
    def max_wires(self) -> int:
        """Largest number of wires in a plane of this TPC."""
        return max((plane.num_wires for plane in self.planes), default=0)

    def __len__(self):
        return len(self.planes)

    def __iter__(self):
        return iter(self.planes)

    def __getitem__(self, index):
        return self.plane(index)

    # Derived properties
    @property
    def drift_sign(self) -> int:
        """Sign of drift w.r.t. to the drift axis orientation.

        Returns
        -------
        int
            Returns the sign of the drift vector w.r.t. to the drift axis
        """
        return int(np.sign(self.drift_dir[self.drift_axis]))

    @property
    def anode_side(self) -> int:
        """Returns whether the anode is on the lower or upper boundary of
        the TPC along the drift axis (0 for lower, 1 for upper).

        Returns
        -------
        int
            Anode side of the TPC
        """
        return (self.drift_sign + 1) // 2

    @property
    def anode_pos(self) -> float:
        """Position of the anode (wire planes) along the drift axis."""
        return float(self.boundaries[self.drift_axis, self.anode_side])

    @property
    def cathode_pos(self) -> float:
        """Position of the cathode along the drift axis."""
        return float(self.boundaries[self.drift_axis, 1 - self.anode_side])

    @property
    def drift_distance(self) -> float:
        """Distance between the cathode and the first wire plane."""
        if self.num_planes == 0:
            return float(self.dimensions[self.drift_axis])

        return abs(self.planes[0].distance_from_plane(self.cathode_position()))

    def cathode_position(self) -> np.ndarray:
        """(3) Center of the cathode face of the TPC box."""
        position = self.center.copy()
        position[self.drift_axis] = self.cathode_pos
        return position

    def update_drift(self):
        """Updates the drift direction from the position of the planes.

        Electrons drift toward the planes, i.e. opposite to the plane normal,
        which points inside the TPC.
        """
        if self.num_planes == 0:
            direction = np.array([-1.0, 0.0, 0.0])
        else:
            direction = -self.planes[0].normal

        self.drift_axis = int(np.argmax(np.abs(direction)))
        self.drift_dir = np.zeros(3)
        self.drift_dir[self.drift_axis] = np.sign(direction[self.drift_axis])

    def plane_pitch(self, p1: int = 0, p2: int = 1) -> float:
        """Distance between two planes of the TPC.

        Parameters
        ----------
        p1 : int, default 0
            Number of the first plane
        p2 : int, default 1
            Number of the second plane

        Returns
        -------
        float
            Distance between the planes, along the normal
        """
        plane1, plane2 = self.plane(p1), self.plane(p2)
        return abs(plane2.distance_from_plane(plane1.center))

    def wire_pitch(self, plane: int = 0) -> float:
        """Wire pitch of one of the planes of the TPC."""
        return self.plane(plane).wire_pitch

    # Sorting protocol
    def sort_sub_volumes(self, sorter):
        """Sorts the planes of the TPC, then the wires of each plane."""
        sorter.sort_planes(self.planes)
        for plane in self.planes:
            plane.sort_wires(sorter)

    def update_after_sorting(self, tpc_id: TPCID):
        """Sets the final identifier and updates the planes.

        Parameters
        ----------
        tpc_id : TPCID
            Final identifier of the TPC
        """
        self.id = tpc_id
        for p, plane in enumerate(self.planes):
            plane.update_after_sorting(PlaneID(tpc_id, p), self)

        self.update_drift()

    # Coordinate transformations
    def to_world_coords(self, local: np.ndarray) -> np.ndarray:
        """Transforms a point from the TPC local frame to the world."""
        return self.transform.to_world_coords(local)

    def to_local_coords(self, world: np.ndarray) -> np.ndarray:
        """Transforms a point from the world to the TPC local frame."""
        return self.transform.to_local_coords(world)

    def tpc_info(self, indent: str = "", verbosity: int = 1) -> str:
        """Describes the TPC.

        Parameters
        ----------
        indent : str, default ''
            Indentation of the lines after the first one
        verbosity : int, default 1
            Amount of information

        Returns
        -------
        str
            Description of the TPC
        """
        out = f"TPC {self.id}"
        if verbosity <= 0:
            return out

        out += (
            f" (name: {self.name}) from {self.lower.tolist()} to "
            f"{self.upper.tolist()} cm, drift direction {self.drift_dir.tolist()}"
        )
        if verbosity <= 1:
            return out

        views = ", ".join(view_name(v) for v in sorted(self.views))
        out += (
            f"\n{indent}active volume from {self.active_box.lower.tolist()} to "
            f"{self.active_box.upper.tolist()} cm, {self.num_planes} planes "
            f"measuring {views}"
        )

        return out

    def __repr__(self):
        return f"TPCGeo(id={self.id}, planes={self.num_planes})"
