"""Decomposition of 3D points and vectors on a plane basis.

A :class:`PlaneDecomposer` holds a reference point and an orthonormal,
right-handed triple of directions `(main, secondary, normal)`. A point is
decomposed into its distance from the plane (along the normal) and a 2D
projection `(main, secondary)` with respect to the reference point.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

__all__ = ["DecomposedVector", "PlaneDecomposer"]


@dataclass(eq=False)
class DecomposedVector:
    """Point or vector decomposed on a plane basis.

    Attributes
    ----------
    distance : float
        Component along the plane normal
    projection : np.ndarray
        (2) Components along the main and secondary directions
    """

    distance: float
    projection: np.ndarray


class PlaneDecomposer:
    """Projects points and vectors on a plane basis, and composes them back.

    Attributes
    ----------
    reference : np.ndarray
        (3) Reference point of the decomposition
    main : np.ndarray
        (3) Main direction (first projection coordinate)
    secondary : np.ndarray
        (3) Secondary direction (second projection coordinate)
    normal : np.ndarray
        (3) Normal direction (`main x secondary`)
    """

    def __init__(self, reference=None, main=None, secondary=None, normal=None):
        """Initialize the decomposer.

        Parameters
        ----------
        reference : np.ndarray, optional
            (3) Reference point (origin by default)
        main : np.ndarray, optional
            (3) Main direction (x by default)
        secondary : np.ndarray, optional
            (3) Secondary direction (y by default)
        normal : np.ndarray, optional
            (3) Normal direction. Computed as `main x secondary` if not given.
        """
        self.reference = np.zeros(3)
        self.main = np.array([1.0, 0.0, 0.0])
        self.secondary = np.array([0.0, 1.0, 0.0])
        self.normal = np.array([0.0, 0.0, 1.0])
        self.set_base(main, secondary, normal)
        if reference is not None:
            self.set_reference_point(reference)

    def set_reference_point(self, reference):
        """Changes the reference point of the decomposition."""
        self.reference = np.asarray(reference, dtype=float).copy()

    def set_main_direction(self, main):
        """Changes the main direction (the normal is not updated)."""
        self.main = _unit(main)

    def set_secondary_direction(self, secondary):
        """Changes the secondary direction (the normal is not updated)."""
        self.secondary = _unit(secondary)

    def set_base(self, main=None, secondary=None, normal=None):
        """Changes the whole basis.

        Parameters
        ----------
        main : np.ndarray, optional
            (3) Main direction
        secondary : np.ndarray, optional
            (3) Secondary direction
        normal : np.ndarray, optional
            (3) Normal direction, computed from the other two if not given
        """
        if main is not None:
            self.main = _unit(main)
        if secondary is not None:
            self.secondary = _unit(secondary)
        if normal is not None:
            self.normal = _unit(normal)
        else:
            self.normal = np.cross(self.main, self.secondary)

    def point_normal_component(self, point) -> float:
        """Distance of a point from the plane, along the normal."""
        return float(np.dot(np.asarray(point) - self.reference, self.normal))

    def point_main_component(self, point) -> float:
        """Component of a point along the main direction."""
        return float(np.dot(np.asarray(point) - self.reference, self.main))

    def point_secondary_component(self, point) -> float:
        """Component of a point along the secondary direction."""
        return float(np.dot(np.asarray(point) - self.reference, self.secondary))

    def vector_normal_component(self, vector) -> float:
        """Component of a vector along the normal."""
        return float(np.dot(vector, self.normal))

    def vector_main_component(self, vector) -> float:
        """Component of a vector along the main direction."""
        return float(np.dot(vector, self.main))

    def vector_secondary_component(self, vector) -> float:
        """Component of a vector along the secondary direction."""
        return float(np.dot(vector, self.secondary))

    def project_vector_on_plane(self, vector) -> np.ndarray:
        """Projects a vector on the (main, secondary) plane.

        Parameters
        ----------
        vector : np.ndarray
            (3) Vector to project

        Returns
        -------
        np.ndarray
            (2) Main and secondary components
        """
        return np.array(
            [
                self.vector_main_component(vector),
                self.vector_secondary_component(vector),
            ]
        )

    def project_point_on_plane(self, point) -> np.ndarray:
        """Projects a point on the (main, secondary) plane.

        Parameters
        ----------
        point : np.ndarray
            (3) Point to project

        Returns
        -------
        np.ndarray
            (2) Main and secondary components, relative to the reference point
        """
        return self.project_vector_on_plane(np.asarray(point) - self.reference)

    def decompose_point(self, point) -> DecomposedVector:
        """Decomposes a point into its distance from the plane and its
        projection on it.

        Parameters
        ----------
        point : np.ndarray
            (3) Point to decompose

        Returns
        -------
        DecomposedVector
            Normal component and (main, secondary) projection
        """
        return DecomposedVector(
            self.point_normal_component(point), self.project_point_on_plane(point)
        )

    def decompose_vector(self, vector) -> DecomposedVector:
        """Decomposes a vector into its normal component and its projection."""
        return DecomposedVector(
            self.vector_normal_component(vector), self.project_vector_on_plane(vector)
        )

    def compose_vector(self, projection, distance: float = 0.0) -> np.ndarray:
        """Builds a 3D vector from its projection and normal component.

        Parameters
        ----------
        projection : np.ndarray
            (2) Main and secondary components
        distance : float, default 0.
            Normal component

        Returns
        -------
        np.ndarray
            (3) Vector
        """
        return (
            projection[0] * self.main
            + projection[1] * self.secondary
            + distance * self.normal
        )

    def compose_point(self, projection, distance: float = 0.0) -> np.ndarray:
        """Builds a 3D point from its projection and distance from the plane."""
        return self.reference + self.compose_vector(projection, distance)

    def compose(self, decomposed: DecomposedVector) -> np.ndarray:
        """Builds a 3D point back from its decomposition."""
        return self.compose_point(decomposed.projection, decomposed.distance)

    def base(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Returns the `(main, secondary, normal)` triple."""
        return self.main, self.secondary, self.normal


def _unit(vector) -> np.ndarray:
    vector = np.asarray(vector, dtype=float)
    return vector / np.linalg.norm(vector)
