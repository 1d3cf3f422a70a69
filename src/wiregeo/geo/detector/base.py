"""Basic detector components shared across multiple subsystems.

This currently handles:
- :class:`Box` which corresponds to box-shaped detector volumes, aligned
  with the world axes.
"""

from dataclasses import dataclass
from typing import Union

import numpy as np

__all__ = ["Box"]


@dataclass(eq=False)
class Box:
    """Class which holds all methods associated with a box-shaped component.

    Attributes
    ----------
    boundaries : np.ndarray
        (3, 2) Box boundaries
        - 3 is the number of dimensions
        - 2 corresponds to the lower/upper boundaries along each axis
    """

    boundaries: np.ndarray

    def __init__(self, lower: np.ndarray, upper: np.ndarray):
        """Initialize the box object.

        Parameters
        ----------
        lower : np.ndarray
            (3,) Lower bounds of the box
        upper : np.ndarray
            (3,) Upper bounds of the box
        """
        # Store lower and upper boundaries in one array, sorted per axis
        bounds = np.vstack((lower, upper)).astype(float).T
        self.boundaries = np.sort(bounds, axis=1)

    @classmethod
    def from_points(cls, points: np.ndarray) -> "Box":
        """Builds the smallest box which contains a set of points.

        Parameters
        ----------
        points : np.ndarray
            (N, 3) Point coordinates

        Returns
        -------
        Box
            Bounding box of the points
        """
        points = np.asarray(points, dtype=float)
        return cls(points.min(axis=0), points.max(axis=0))

    @classmethod
    def from_transform(cls, transform, half_sizes: np.ndarray) -> "Box":
        """Builds the world bounding box of a local box.

        Parameters
        ----------
        transform : LocalTransformation
            Local-to-world transformation of the box
        half_sizes : np.ndarray
            (3) Half dimensions of the box in its local frame

        Returns
        -------
        Box
            World-aligned box containing all the corners of the local box
        """
        signs = np.array(np.meshgrid([-1, 1], [-1, 1], [-1, 1])).T.reshape(-1, 3)
        corners = [transform.to_world_coords(s * half_sizes) for s in signs]

        return cls.from_points(corners)

    @property
    def center(self) -> np.ndarray:
        """Center of the box.

        Returns
        -------
        np.ndarray
            (3,) Center of the box
        """
        return np.mean(self.boundaries, axis=1)

    @property
    def lower(self) -> np.ndarray:
        """Lower bounds of the box.

        Returns
        -------
        np.ndarray
            (3,) Lower bounds of the box
        """
        return self.boundaries[:, 0]

    @property
    def upper(self) -> np.ndarray:
        """Upper bounds of the box.

        Returns
        -------
        np.ndarray
            (3,) Upper bounds of the box
        """
        return self.boundaries[:, 1]

    @property
    def dimensions(self) -> np.ndarray:
        """Dimensions of the box.

        Returns
        -------
        np.ndarray
            (3,) Box dimensions
        """
        return self.boundaries[:, 1] - self.boundaries[:, 0]

    @property
    def half_width(self) -> float:
        """Half dimension of the box along x."""
        return float(self.dimensions[0] / 2.0)

    @property
    def half_height(self) -> float:
        """Half dimension of the box along y."""
        return float(self.dimensions[1] / 2.0)

    @property
    def length(self) -> float:
        """Full dimension of the box along z."""
        return float(self.dimensions[2])

    @property
    def volume(self) -> float:
        """Volume of the box.

        Returns
        -------
        float
            Box volume
        """
        return float(np.prod(self.dimensions))

    def contains_position(self, point: np.ndarray, wiggle: float = 1.0) -> bool:
        """Checks whether a point is inside the box.

        The half dimensions of the box are scaled by the `wiggle` factor
        around the box center before the check. Boundaries are inclusive.

        Parameters
        ----------
        point : np.ndarray
            (3) Coordinates of the point
        wiggle : float, default 1.
            Scaling factor of the box half dimensions

        Returns
        -------
        bool
            `True` if the point is inside the (scaled) box
        """
        half = wiggle * self.dimensions / 2.0
        offset = np.abs(np.asarray(point, dtype=float) - self.center)

        return bool(np.all(offset <= half))

    def distance(self, points: np.ndarray) -> Union[float, np.ndarray]:
        """Computes the minimum distance from a set of points to the box.

        If the point(s) is(are) inside the box, the distance is 0.

        Parameters
        ----------
        points : np.ndarray
            (N, 3) Coordinates of the points to compute the distance to

        Returns
        -------
        np.ndarray
            (N,) Minimum distance from each point to the box
        """
        # For each coord, if inside the interval, contribution is 0;
        # if outside, take the amount by which it's outside.
        diff_lower = self.lower - points
        diff_upper = points - self.upper
        delta = np.maximum(0.0, np.maximum(diff_lower, diff_upper))

        # Euclidean distance
        if len(delta.shape) == 1:
            return float(np.linalg.norm(delta))

        return np.linalg.norm(delta, axis=1)

    def __repr__(self):
        return f"Box(lower={self.lower.tolist()}, upper={self.upper.tolist()})"
