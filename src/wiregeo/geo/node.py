"""In-memory scene graph consumed by the geometry builder.

This is the minimal node tree interface the geometry relies on: each
:class:`GeoNode` is a placement (4x4 homogeneous matrix, local to mother) of
a :class:`GeoVolume`, which owns a shape, a material and an ordered list of
daughter nodes. The same volume can be placed several times.

Any external scene graph exposing the same attributes (`name`, `volume`,
`matrix`, `num_daughters`, `daughter(i)`; and on volumes `name`, `shape`,
`material`) can be walked by the geometry.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .transform import placement_matrix

__all__ = ["GeoMaterial", "BoxShape", "TubeShape", "GeoVolume", "GeoNode"]


@dataclass(eq=False)
class GeoMaterial:
    """Material of a volume.

    Attributes
    ----------
    name : str
        Name of the material
    density : float
        Density in g/cm^3
    """

    name: str
    density: float = 0.0


@dataclass(eq=False)
class BoxShape:
    """Box centered on the local origin, aligned with the local axes.

    Attributes
    ----------
    half_sizes : np.ndarray
        (3) Half dimensions of the box along the local x, y and z axes
    """

    half_sizes: np.ndarray

    def __post_init__(self):
        self.half_sizes = np.asarray(self.half_sizes, dtype=float)

    @property
    def dx(self) -> float:
        """Half dimension along the local x axis."""
        return float(self.half_sizes[0])

    @property
    def dy(self) -> float:
        """Half dimension along the local y axis."""
        return float(self.half_sizes[1])

    @property
    def dz(self) -> float:
        """Half dimension along the local z axis."""
        return float(self.half_sizes[2])

    def contains(self, local: np.ndarray) -> bool:
        """Checks whether a local point is inside the shape."""
        return bool(np.all(np.abs(local) <= self.half_sizes))

    def capacity(self) -> float:
        """Volume of the shape in cm^3."""
        return float(8.0 * np.prod(self.half_sizes))

    def axis_range(self, axis: int):
        """Range covered by the shape along a local axis."""
        return -self.half_sizes[axis], self.half_sizes[axis]


@dataclass(eq=False)
class TubeShape:
    """Cylindrical shell along the local z axis.

    Attributes
    ----------
    rmin : float
        Inner radius
    rmax : float
        Outer radius
    dz : float
        Half length along the local z axis
    """

    rmin: float
    rmax: float
    dz: float

    @property
    def half_sizes(self) -> np.ndarray:
        """(3) Half dimensions of the bounding box of the shape."""
        return np.array([self.rmax, self.rmax, self.dz])

    def contains(self, local: np.ndarray) -> bool:
        """Checks whether a local point is inside the shape."""
        r = np.hypot(local[0], local[1])
        return bool(self.rmin <= r <= self.rmax and abs(local[2]) <= self.dz)

    def capacity(self) -> float:
        """Volume of the shape in cm^3."""
        return float(2.0 * self.dz * np.pi * (self.rmax**2 - self.rmin**2))

    def axis_range(self, axis: int):
        """Range covered by the shape along a local axis."""
        half = self.half_sizes[axis]
        return -half, half


@dataclass(eq=False)
class GeoVolume:
    """Logical volume: a shape filled with a material, with daughters.

    Attributes
    ----------
    name : str
        Name of the volume
    shape : Union[BoxShape, TubeShape]
        Shape of the volume
    material : GeoMaterial, optional
        Material filling the volume
    daughters : List[GeoNode]
        Ordered placements of daughter volumes
    """

    name: str
    shape: object
    material: Optional[GeoMaterial] = None
    daughters: List["GeoNode"] = field(default_factory=list)

    @property
    def num_daughters(self) -> int:
        """Number of daughter nodes."""
        return len(self.daughters)

    def daughter(self, index: int) -> "GeoNode":
        """Returns a daughter node by index."""
        return self.daughters[index]

    def add(self, node: "GeoNode") -> "GeoNode":
        """Appends a daughter node, returns it."""
        self.daughters.append(node)
        return node

    def weight(self) -> float:
        """Mass of the volume and of all its daughters in grams.

        The daughters are assumed to be fully contained in their mother, so
        their capacity is removed from that of the mother.
        """
        density = self.material.density if self.material is not None else 0.0
        own = self.shape.capacity()
        mass = 0.0
        for node in self.daughters:
            own -= node.volume.shape.capacity()
            mass += node.volume.weight()

        return mass + max(own, 0.0) * density


@dataclass(eq=False)
class GeoNode:
    """Placement of a volume inside its mother volume.

    Attributes
    ----------
    name : str
        Name of the node (usually the volume name with a copy number)
    volume : GeoVolume
        Placed volume
    matrix : np.ndarray
        (4, 4) Homogeneous matrix from the node frame to the mother frame
    """

    name: str
    volume: GeoVolume
    matrix: np.ndarray = field(default_factory=lambda: np.eye(4))

    def __post_init__(self):
        self.matrix = np.asarray(self.matrix, dtype=float)

    @classmethod
    def place(cls, volume, copy=0, translation=None, rotation=None):
        """Places a volume, naming the node `<volume name>_<copy>`.

        Parameters
        ----------
        volume : GeoVolume
            Volume to place
        copy : int, default 0
            Copy number of the placement
        translation : np.ndarray, optional
            (3) Position of the volume origin in the mother frame
        rotation : np.ndarray, optional
            (3, 3) Rotation of the volume in the mother frame

        Returns
        -------
        GeoNode
            New node
        """
        matrix = placement_matrix(translation, rotation)
        return cls(f"{volume.name}_{copy}", volume, matrix)

    @property
    def num_daughters(self) -> int:
        """Number of daughter nodes of the placed volume."""
        return self.volume.num_daughters

    def daughter(self, index: int) -> "GeoNode":
        """Returns a daughter node of the placed volume by index."""
        return self.volume.daughter(index)

    def __repr__(self):
        return f"GeoNode({self.name!r}, volume={self.volume.name!r})"
