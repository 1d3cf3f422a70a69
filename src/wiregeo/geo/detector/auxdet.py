"""Auxiliary detector geometry classes.

Auxiliary detectors (e.g. cosmic ray tagger modules) are box-shaped solids
with a set of sensitive sub-volumes (e.g. scintillator strips). They are
independent of the cryostat/TPC/plane/wire hierarchy.
"""

from typing import List, Optional

import numpy as np

from ..errors import GeometryNotFoundError
from .base import Box

__all__ = ["AuxDetSensitiveGeo", "AuxDetGeo"]


class AuxDetSensitiveGeo:
    """Sensitive volume of an auxiliary detector.

    Attributes
    ----------
    transform : LocalTransformation
        Local-to-world transformation of the volume
    half_sizes : np.ndarray
        (3) Half dimensions of the box in its local frame
    name : str
        Name of the volume
    center : np.ndarray
        (3) Position of the center of the volume
    """

    def __init__(self, transform, half_sizes: np.ndarray, name: str = ""):
        """Initialize the volume.

        Parameters
        ----------
        transform : LocalTransformation
            Local-to-world transformation of the volume
        half_sizes : np.ndarray
            (3) Half dimensions of the box in its local frame
        name : str, default ''
            Name of the volume
        """
        self.transform = transform
        self.half_sizes = np.asarray(half_sizes, dtype=float)
        self.name = name
        self.center = transform.to_world_coords(np.zeros(3))

    @classmethod
    def from_node(cls, node, transform):
        """Builds the volume from its box-shaped node."""
        return cls(transform, node.volume.shape.half_sizes, node.volume.name)

    @property
    def half_width(self) -> float:
        """Half dimension along the local x axis."""
        return float(self.half_sizes[0])

    @property
    def half_height(self) -> float:
        """Half dimension along the local y axis."""
        return float(self.half_sizes[1])

    @property
    def length(self) -> float:
        """Full dimension along the local z axis."""
        return float(2.0 * self.half_sizes[2])

    @property
    def normal(self) -> np.ndarray:
        """(3) Direction of the local z axis in the world frame."""
        return self.transform.to_world_vector([0.0, 0.0, 1.0])

    def bounding_box(self) -> Box:
        """World-aligned box containing the volume."""
        return Box.from_transform(self.transform, self.half_sizes)

    def contains_position(self, point: np.ndarray, tolerance: float = 0.0) -> bool:
        """Checks whether a point is inside the volume.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates
        tolerance : float, default 0.
            Amount by which the volume is grown on each side, in cm

        Returns
        -------
        bool
            `True` if the point is inside the grown volume
        """
        local = self.transform.to_local_coords(point)
        return bool(np.all(np.abs(local) <= self.half_sizes + tolerance))

    def distance_to_point(self, point: np.ndarray) -> float:
        """Distance between a point and the center of the volume."""
        return float(np.linalg.norm(np.asarray(point) - self.center))

    def to_world_coords(self, local: np.ndarray) -> np.ndarray:
        """Transforms a point from the local frame to the world."""
        return self.transform.to_world_coords(local)

    def to_local_coords(self, world: np.ndarray) -> np.ndarray:
        """Transforms a point from the world to the local frame."""
        return self.transform.to_local_coords(world)

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, center={self.center.tolist()})"


class AuxDetGeo(AuxDetSensitiveGeo):
    """Auxiliary detector, with its ordered sensitive volumes.

    Attributes
    ----------
    sensitive : List[AuxDetSensitiveGeo]
        Ordered list of sensitive volumes
    """

    def __init__(
        self,
        transform,
        half_sizes: np.ndarray,
        sensitive: Optional[List[AuxDetSensitiveGeo]] = None,
        name: str = "",
    ):
        """Initialize the auxiliary detector.

        Parameters
        ----------
        transform : LocalTransformation
            Local-to-world transformation of the detector
        half_sizes : np.ndarray
            (3) Half dimensions of the box in its local frame
        sensitive : List[AuxDetSensitiveGeo], optional
            Sensitive volumes of the detector
        name : str, default ''
            Name of the detector volume
        """
        super().__init__(transform, half_sizes, name)
        self.sensitive = list(sensitive) if sensitive is not None else []

    @classmethod
    def from_node(cls, node, transform, sensitive=None):
        """Builds the detector from its box-shaped node."""
        half_sizes = node.volume.shape.half_sizes
        return cls(transform, half_sizes, sensitive, node.volume.name)

    @property
    def num_sensitive(self) -> int:
        """Number of sensitive volumes."""
        return len(self.sensitive)

    def sensitive_volume(self, index: int) -> AuxDetSensitiveGeo:
        """Returns a sensitive volume by index."""
        if not 0 <= index < self.num_sensitive:
            raise GeometryNotFoundError(
                f"Auxiliary detector {self.name} has no sensitive volume {index} "
                f"({self.num_sensitive} volumes)."
            )

        return self.sensitive[index]

    def find_sensitive_index(self, point: np.ndarray, tolerance: float = 0.0):
        """Finds the sensitive volume containing a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates
        tolerance : float, default 0.
            Amount by which the volumes are grown on each side, in cm

        Returns
        -------
        int
            Index of the first sensitive volume containing the point

        Raises
        ------
        GeometryNotFoundError
            If no sensitive volume contains the point
        """
        for i, volume in enumerate(self.sensitive):
            if volume.contains_position(point, tolerance):
                return i

        raise GeometryNotFoundError(
            f"Can't find a sensitive volume of {self.name} containing {point}."
        )

    def sort_sub_volumes(self, sorter):
        """Sorts the sensitive volumes with the provided sorter."""
        sorter.sort_aux_det_sensitive(self.sensitive)
