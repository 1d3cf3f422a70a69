"""Optical detector geometry classes."""

from dataclasses import dataclass

import numpy as np

__all__ = ["OpDetGeo"]


@dataclass(eq=False)
class OpDetGeo:
    """Class which holds all properties of an individual optical detector.

    Attributes
    ----------
    transform : LocalTransformation
        Local-to-world transformation of the detector
    shape : Union[BoxShape, TubeShape]
        Shape of the sensitive volume
    name : str
        Name of the detector volume
    center : np.ndarray
        (3) Position of the center of the detector
    """

    transform: object
    shape: object
    name: str
    center: np.ndarray

    def __init__(self, transform, shape, name: str = ""):
        """Initialize the optical detector.

        Parameters
        ----------
        transform : LocalTransformation
            Local-to-world transformation of the detector
        shape : Union[BoxShape, TubeShape]
            Shape of the sensitive volume
        name : str, default ''
            Name of the detector volume
        """
        self.transform = transform
        self.shape = shape
        self.name = name
        self.center = transform.to_world_coords(np.zeros(3))

    @classmethod
    def from_node(cls, node, transform) -> "OpDetGeo":
        """Builds an optical detector from its node."""
        return cls(transform, node.volume.shape, node.volume.name)

    @property
    def is_tube(self) -> bool:
        """Whether the detector is a cylinder (e.g. a PMT)."""
        return hasattr(self.shape, "rmax")

    @property
    def is_bar(self) -> bool:
        """Whether the detector is a box (e.g. a light guide bar)."""
        return not self.is_tube

    @property
    def half_sizes(self) -> np.ndarray:
        """(3) Half dimensions of the detector bounding box (local frame)."""
        return np.asarray(self.shape.half_sizes, dtype=float)

    @property
    def rmax(self) -> float:
        """Outer radius (tubes) or half width (bars)."""
        return float(self.shape.rmax if self.is_tube else self.half_sizes[0])

    @property
    def length(self) -> float:
        """Length of the detector along its local z axis."""
        return float(2.0 * self.half_sizes[2])

    def distance_to_point(self, point: np.ndarray) -> float:
        """Distance between a point and the center of the detector."""
        return float(np.linalg.norm(np.asarray(point) - self.center))

    def cos_theta_from_normal(self, point: np.ndarray) -> float:
        """Cosine of the angle between the detector normal (local x axis)
        and the direction from the detector center to a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        float
            Cosine of the angle
        """
        local = self.transform.to_local_coords(point)
        return float(local[0] / np.linalg.norm(local))

    def to_world_coords(self, local: np.ndarray) -> np.ndarray:
        """Transforms a point from the detector local frame to the world."""
        return self.transform.to_world_coords(local)

    def to_local_coords(self, world: np.ndarray) -> np.ndarray:
        """Transforms a point from the world to the detector local frame."""
        return self.transform.to_local_coords(world)
