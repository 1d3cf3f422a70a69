"""Homogeneous transformations between local and world coordinates."""

from typing import Optional, Sequence

import numpy as np

__all__ = [
    "LocalTransformation",
    "translation_matrix",
    "placement_matrix",
    "rotation_from_axis",
]


def translation_matrix(translation) -> np.ndarray:
    """Builds a pure translation as a 4x4 homogeneous matrix.

    Parameters
    ----------
    translation : np.ndarray
        (3) Translation vector

    Returns
    -------
    np.ndarray
        (4, 4) Homogeneous transformation matrix
    """
    return placement_matrix(translation)


def placement_matrix(translation=None, rotation=None) -> np.ndarray:
    """Builds a 4x4 homogeneous matrix from a rotation and a translation.

    Parameters
    ----------
    translation : np.ndarray, optional
        (3) Translation vector (position of the local origin in the mother
        frame)
    rotation : np.ndarray, optional
        (3, 3) Rotation matrix (its columns are the local axes expressed in
        the mother frame)

    Returns
    -------
    np.ndarray
        (4, 4) Homogeneous transformation matrix
    """
    matrix = np.eye(4)
    if rotation is not None:
        matrix[:3, :3] = np.asarray(rotation, dtype=float)
    if translation is not None:
        matrix[:3, 3] = np.asarray(translation, dtype=float)

    return matrix


def rotation_from_axis(z_axis, x_hint=(1.0, 0.0, 0.0)) -> np.ndarray:
    """Builds a rotation which maps the local z axis onto a given direction.

    Parameters
    ----------
    z_axis : np.ndarray
        (3) Direction of the local z axis in the mother frame
    x_hint : np.ndarray, default (1, 0, 0)
        Preferred direction of the local x axis. Its component along the new
        z axis is removed.

    Returns
    -------
    np.ndarray
        (3, 3) Right-handed rotation matrix
    """
    z_axis = np.asarray(z_axis, dtype=float)
    z_axis = z_axis / np.linalg.norm(z_axis)
    x_axis = np.asarray(x_hint, dtype=float)
    x_axis = x_axis - np.dot(x_axis, z_axis) * z_axis
    if np.linalg.norm(x_axis) < 1e-9:
        # The hint is parallel to the requested axis, pick another one
        x_axis = np.roll(z_axis, 1) - np.dot(np.roll(z_axis, 1), z_axis) * z_axis
    x_axis /= np.linalg.norm(x_axis)
    y_axis = np.cross(z_axis, x_axis)

    return np.column_stack((x_axis, y_axis, z_axis))


class LocalTransformation:
    """Transformation from the local frame of a node to the world frame.

    Attributes
    ----------
    matrix : np.ndarray
        (4, 4) Local-to-world homogeneous matrix
    """

    def __init__(self, matrix: Optional[np.ndarray] = None):
        """Initialize the transformation.

        Parameters
        ----------
        matrix : np.ndarray, optional
            (4, 4) Local-to-world homogeneous matrix. Identity if not provided.
        """
        self.matrix = np.eye(4) if matrix is None else np.asarray(matrix, dtype=float)
        self._inverse = np.linalg.inv(self.matrix)

    @classmethod
    def from_path(cls, path: Sequence, depth: Optional[int] = None):
        """Composes the placements of the nodes of a path.

        Parameters
        ----------
        path : Sequence[GeoNode]
            Nodes from the top of the tree down to the node of interest
        depth : int, optional
            Index in the path of the node of interest (last node by default)

        Returns
        -------
        LocalTransformation
            Transformation from the node local frame to the world frame
        """
        if depth is None:
            depth = len(path) - 1

        matrix = np.eye(4)
        for node in path[: depth + 1]:
            matrix = matrix @ node.matrix

        return cls(matrix)

    @property
    def rotation(self) -> np.ndarray:
        """(3, 3) Rotation part of the transformation."""
        return self.matrix[:3, :3]

    @property
    def translation(self) -> np.ndarray:
        """(3) Position of the local origin in the world frame."""
        return self.matrix[:3, 3]

    def to_world_coords(self, local: np.ndarray) -> np.ndarray:
        """Transforms a point from the local to the world frame."""
        return self.matrix[:3, :3] @ np.asarray(local, dtype=float) + self.matrix[:3, 3]

    def to_local_coords(self, world: np.ndarray) -> np.ndarray:
        """Transforms a point from the world to the local frame."""
        return (
            self._inverse[:3, :3] @ np.asarray(world, dtype=float)
            + self._inverse[:3, 3]
        )

    def to_world_vector(self, local: np.ndarray) -> np.ndarray:
        """Transforms a displacement vector from the local to the world frame."""
        return self.matrix[:3, :3] @ np.asarray(local, dtype=float)

    def to_local_vector(self, world: np.ndarray) -> np.ndarray:
        """Transforms a displacement vector from the world to the local frame."""
        return self._inverse[:3, :3] @ np.asarray(world, dtype=float)
