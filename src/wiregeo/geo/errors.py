"""Typed exceptions for geometry queries.

Two kinds of hard failures are distinguished:
- :class:`GeometryNotFoundError` when an index, an ID or a named volume
  does not exist in the loaded geometry;
- :class:`InvalidInputError` when the arguments of a query are inconsistent
  with each other (e.g. two planes which do not belong to the same TPC).

Purely geometric "no answer for this position" conditions are not
exceptions: they are reported through sentinel return values.
"""

__all__ = ["GeometryError", "GeometryNotFoundError", "InvalidInputError"]


class GeometryError(Exception):
    """Base exception for all geometry errors."""


class GeometryNotFoundError(GeometryError, LookupError):
    """Raised when a geometry element (or named volume) cannot be found."""


class InvalidInputError(GeometryError, ValueError):
    """Raised when the input of a geometry query is malformed."""
