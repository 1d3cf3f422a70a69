"""Numba JIT compiled wire intersection routines and multi-view algebra.

Wires are finite segments. On a given plane they are all parallel, so only
wires from two different planes of the same TPC can cross; the crossing is
computed either in the 2D (y, z) projection or, in 3D, as the point of
closest approach of the two wire lines.
"""

import numba as nb
import numpy as np

__all__ = [
    "intersect_lines",
    "value_in_range",
    "point_within_segments",
    "wires_intersection_and_offsets",
    "compute_third_plane_slope",
    "compute_third_plane_dtdw",
]

# Slopes below this value (in absolute terms) cannot be resolved
FLAT_SLOPE = 1e-3

# Tolerance used to decide whether a point lies within a segment range
RANGE_TOLERANCE = 1e-9


@nb.njit(cache=True)
def intersect_lines(
    a_start_x: nb.float64,
    a_start_y: nb.float64,
    a_end_x: nb.float64,
    a_end_y: nb.float64,
    b_start_x: nb.float64,
    b_start_y: nb.float64,
    b_end_x: nb.float64,
    b_end_y: nb.float64,
) -> (nb.boolean, nb.float64, nb.float64):
    """Computes the intersection of two 2D lines, each defined by two points.

    Parameters
    ----------
    a_start_x, a_start_y : float
        First point of the first line
    a_end_x, a_end_y : float
        Second point of the first line
    b_start_x, b_start_y : float
        First point of the second line
    b_end_x, b_end_y : float
        Second point of the second line

    Returns
    -------
    bool
        `False` if the lines are parallel
    float
        First coordinate of the intersection (infinite if parallel)
    float
        Second coordinate of the intersection (infinite if parallel)
    """
    denom = (a_start_x - a_end_x) * (b_start_y - b_end_y) - (a_start_y - a_end_y) * (
        b_start_x - b_end_x
    )
    if denom == 0.0:
        return False, np.inf, np.inf

    a = (a_start_x * a_end_y - a_start_y * a_end_x) / denom
    b = (b_start_x * b_end_y - b_start_y * b_end_x) / denom

    x = (b_start_x - b_end_x) * a - (a_start_x - a_end_x) * b
    y = (b_start_y - b_end_y) * a - (a_start_y - a_end_y) * b

    return True, x, y


@nb.njit(cache=True)
def value_in_range(
    value: nb.float64, lower: nb.float64, upper: nb.float64
) -> nb.boolean:
    """Checks whether a value is within a range, irrespective of its order.

    Parameters
    ----------
    value : float
        Value to check
    lower : float
        One end of the range
    upper : float
        Other end of the range

    Returns
    -------
    bool
        `True` if the value is in the range (with tolerance)
    """
    if lower > upper:
        lower, upper = upper, lower

    return (value >= lower - RANGE_TOLERANCE) and (value <= upper + RANGE_TOLERANCE)


@nb.njit(cache=True)
def point_within_segments(
    a_start_x: nb.float64,
    a_start_y: nb.float64,
    a_end_x: nb.float64,
    a_end_y: nb.float64,
    b_start_x: nb.float64,
    b_start_y: nb.float64,
    b_end_x: nb.float64,
    b_end_y: nb.float64,
    x: nb.float64,
    y: nb.float64,
) -> nb.boolean:
    """Checks whether a 2D point lies within the extent of two segments.

    The point is assumed to be on both lines already: only the bounding
    ranges of the segments are checked.

    Parameters
    ----------
    a_start_x, a_start_y, a_end_x, a_end_y : float
        End points of the first segment
    b_start_x, b_start_y, b_end_x, b_end_y : float
        End points of the second segment
    x, y : float
        Coordinates of the point

    Returns
    -------
    bool
        `True` if the point is within both segments
    """
    return (
        value_in_range(x, a_start_x, a_end_x)
        and value_in_range(y, a_start_y, a_end_y)
        and value_in_range(x, b_start_x, b_end_x)
        and value_in_range(y, b_start_y, b_end_y)
    )


@nb.njit(cache=True)
def wires_intersection_and_offsets(
    center1: nb.float64[:],
    dir1: nb.float64[:],
    center2: nb.float64[:],
    dir2: nb.float64[:],
) -> (nb.float64[:], nb.float64, nb.float64):
    """Finds the point of closest approach between two (skew) wire lines.

    Wires which belong to different planes do not cross in 3D. This finds
    on each wire the point closest to the other wire and returns their
    midpoint, along with the offset of each of these points from the center
    of its wire.

    Parameters
    ----------
    center1 : np.ndarray
        (3) Center of the first wire
    dir1 : np.ndarray
        (3) Unit direction of the first wire
    center2 : np.ndarray
        (3) Center of the second wire
    dir2 : np.ndarray
        (3) Unit direction of the second wire

    Returns
    -------
    np.ndarray
        (3) Midpoint of the closest approach (infinite if parallel)
    float
        Offset of the closest point along the first wire from its center
    float
        Offset of the closest point along the second wire from its center
    """
    w0 = center1 - center2
    cos = np.dot(dir1, dir2)
    d = np.dot(dir1, w0)
    e = np.dot(dir2, w0)
    denom = 1.0 - cos * cos
    if denom <= 0.0:
        return np.full(3, np.inf), np.inf, np.inf

    offset1 = (cos * e - d) / denom
    offset2 = (e - cos * d) / denom

    point1 = center1 + offset1 * dir1
    point2 = center2 + offset2 * dir2

    return 0.5 * (point1 + point2), offset1, offset2


def compute_third_plane_slope(
    angle1: float, slope1: float, angle2: float, slope2: float, angle3: float
) -> float:
    """Computes the slope in a third plane from the slopes in two planes.

    The slopes are expressed as a ratio of distances (drift coordinate over
    wire coordinate) and the angles are the directions of the wire
    coordinate of each plane (`phi_z`).

    Parameters
    ----------
    angle1 : float
        Wire coordinate direction of the first plane
    slope1 : float
        Slope measured in the first plane
    angle2 : float
        Wire coordinate direction of the second plane
    slope2 : float
        Slope measured in the second plane
    angle3 : float
        Wire coordinate direction of the target plane

    Returns
    -------
    float
        Slope in the target plane. If both input slopes are too flat to be
        resolved, a small sentinel slope (0.001) is returned. If only one of
        them is, the sentinel is used as inverse slope. If the inverse slope
        vanishes, 999 is returned.
    """
    # Can't resolve very small slopes
    if abs(slope1) < FLAT_SLOPE and abs(slope2) < FLAT_SLOPE:
        return FLAT_SLOPE

    inv_slope3 = FLAT_SLOPE
    if abs(slope1) > FLAT_SLOPE and abs(slope2) > FLAT_SLOPE:
        inv_slope3 = (
            np.sin(angle3 - angle2) / slope1 - np.sin(angle3 - angle1) / slope2
        ) / np.sin(angle1 - angle2)
    if inv_slope3 == 0.0:
        return 999.0

    return float(1.0 / inv_slope3)


def compute_third_plane_dtdw(
    angle1: float,
    pitch1: float,
    dtdw1: float,
    angle2: float,
    pitch2: float,
    dtdw2: float,
    angle_target: float,
    pitch_target: float,
) -> float:
    """Computes the dT/dW slope in a third plane from the slopes in two planes.

    The time-over-wire slopes are converted into distance ratios using the
    wire pitch of each plane. The time-to-distance conversion factor is
    common to all planes and cancels out.

    Parameters
    ----------
    angle1, pitch1, dtdw1 : float
        Wire coordinate direction, wire pitch and slope of the first plane
    angle2, pitch2, dtdw2 : float
        Wire coordinate direction, wire pitch and slope of the second plane
    angle_target, pitch_target : float
        Wire coordinate direction and wire pitch of the target plane

    Returns
    -------
    float
        dT/dW slope in the target plane
    """
    return pitch_target * compute_third_plane_slope(
        angle1, dtdw1 / pitch1, angle2, dtdw2 / pitch2, angle_target
    )
