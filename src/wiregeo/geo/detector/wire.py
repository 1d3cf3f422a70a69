"""Wire geometry description.

A wire is modeled as a finite, oriented segment in 3D.
"""

from dataclasses import dataclass

import numpy as np

from ..ids import WireID

__all__ = ["WireGeo"]


@dataclass(eq=False)
class WireGeo:
    """Geometry of a single sensing wire.

    Attributes
    ----------
    center : np.ndarray
        (3) Position of the center of the wire
    direction : np.ndarray
        (3) Unit vector from the start to the end of the wire
    half_length : float
        Half of the length of the wire in cm
    radius : float
        Radius of the wire in cm
    name : str
        Name of the wire volume
    id : WireID
        Identifier of the wire (only valid after sorting)
    flipped : bool
        Whether the wire orientation was reversed with respect to its
        description
    """

    center: np.ndarray
    direction: np.ndarray
    half_length: float
    radius: float = 0.0
    name: str = ""
    id: WireID = None
    flipped: bool = False

    def __init__(
        self,
        center: np.ndarray,
        direction: np.ndarray,
        half_length: float,
        radius: float = 0.0,
        name: str = "",
    ):
        """Initialize the wire.

        Parameters
        ----------
        center : np.ndarray
            (3) Position of the center of the wire
        direction : np.ndarray
            (3) Direction of the wire (normalized here)
        half_length : float
            Half of the length of the wire
        radius : float, default 0.
            Radius of the wire
        name : str, default ''
            Name of the wire volume
        """
        direction = np.asarray(direction, dtype=float)
        assert half_length >= 0.0, "The wire half length must be positive."

        self.center = np.asarray(center, dtype=float)
        self.direction = direction / np.linalg.norm(direction)
        self.half_length = float(half_length)
        self.radius = float(radius)
        self.name = name
        self.id = WireID()
        self.flipped = False

    @classmethod
    def from_node(cls, node, transform) -> "WireGeo":
        """Builds a wire from a tube-shaped node.

        The wire runs along the local z axis of the tube.

        Parameters
        ----------
        node : GeoNode
            Wire node
        transform : LocalTransformation
            Local-to-world transformation of the node

        Returns
        -------
        WireGeo
            Wire geometry
        """
        shape = node.volume.shape
        radius = getattr(shape, "rmax", 0.0)
        center = transform.to_world_coords(np.zeros(3))
        direction = transform.to_world_vector([0.0, 0.0, 1.0])

        return cls(center, direction, shape.dz, radius, node.volume.name)

    @property
    def start(self) -> np.ndarray:
        """(3) Start point of the wire."""
        return self.center - self.half_length * self.direction

    @property
    def end(self) -> np.ndarray:
        """(3) End point of the wire."""
        return self.center + self.half_length * self.direction

    @property
    def length(self) -> float:
        """Length of the wire in cm."""
        return 2.0 * self.half_length

    @property
    def theta_z(self) -> float:
        """Angle of the wire with respect to the z axis, in radians."""
        return float(np.arccos(np.clip(self.direction[2], -1.0, 1.0)))

    @property
    def cos_theta_z(self) -> float:
        """Cosine of the angle of the wire with respect to the z axis."""
        return float(self.direction[2])

    @property
    def phi(self) -> float:
        """Azimuthal angle of the wire direction."""
        return float(np.arctan2(self.direction[1], self.direction[0]))

    def is_horizontal(self) -> bool:
        """Whether the wire has no vertical (y) component."""
        return bool(abs(self.direction[1]) < 1e-6)

    def is_vertical(self) -> bool:
        """Whether the wire is along the vertical (y) axis."""
        return bool(abs(self.direction[0]) < 1e-6 and abs(self.direction[2]) < 1e-6)

    def is_parallel_to(self, other: "WireGeo") -> bool:
        """Whether this wire is parallel to another one."""
        return bool(abs(abs(np.dot(self.direction, other.direction)) - 1.0) < 1e-6)

    def position_from_center(self, offset: float) -> np.ndarray:
        """Returns the point of the wire at a given offset from its center.

        Parameters
        ----------
        offset : float
            Signed distance from the center along the wire direction

        Returns
        -------
        np.ndarray
            (3) Point on the wire line
        """
        return self.center + offset * self.direction

    def distance_from(self, other: "WireGeo") -> float:
        """Distance between the lines of two parallel wires.

        Parameters
        ----------
        other : WireGeo
            The other wire

        Returns
        -------
        float
            Perpendicular distance between the two wire lines
        """
        delta = self.center - other.center
        perp = delta - np.dot(delta, other.direction) * other.direction

        return float(np.linalg.norm(perp))

    def flip(self):
        """Reverses the orientation of the wire (start and end swap)."""
        self.direction = -self.direction
        self.flipped = not self.flipped

    def update_after_sorting(self, wire_id: WireID):
        """Updates the wire identifier once its final position is known.

        Parameters
        ----------
        wire_id : WireID
            Final identifier of the wire
        """
        self.id = wire_id

    def __repr__(self):
        return (
            f"WireGeo(id={self.id}, center={self.center.tolist()}, "
            f"direction={self.direction.tolist()}, half_length={self.half_length})"
        )
