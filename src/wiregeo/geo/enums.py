"""Module which contains enumerated variables shared across the geometry."""

from enum import IntEnum

__all__ = ["View", "Orientation", "SignalType", "view_name", "orientation_name"]


class View(IntEnum):
    """Enumerates the sensing orientations a wire plane can measure."""

    U = 0
    V = 1
    Z = 2
    Y = 3
    X = 4
    THREE_D = 5
    UNKNOWN = 6


class Orientation(IntEnum):
    """Enumerates the orientations of a wire plane."""

    HORIZONTAL = 0
    VERTICAL = 1


class SignalType(IntEnum):
    """Enumerates the types of signal a readout channel can carry."""

    INDUCTION = 0
    COLLECTION = 1
    MYSTERY = 2


def view_name(view):
    """Returns a printable name for a view.

    Parameters
    ----------
    view : View
        View to name

    Returns
    -------
    str
        Name of the view (e.g. 'U', '3D' or '?')
    """
    names = {View.THREE_D: "3D", View.UNKNOWN: "?"}
    try:
        view = View(view)
    except ValueError:
        return f"<UNSUPPORTED ({int(view)})>"

    return names.get(view, view.name)


def orientation_name(orientation):
    """Returns a printable name for a plane orientation.

    Parameters
    ----------
    orientation : Orientation
        Orientation to name

    Returns
    -------
    str
        Name of the orientation
    """
    try:
        return Orientation(orientation).name.lower()
    except ValueError:
        return f"<UNSUPPORTED ({int(orientation)})>"
