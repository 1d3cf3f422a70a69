"""Hierarchical identifiers of geometry elements.

Two parallel hierarchies are defined:
- the geometry one, :class:`CryostatID` > :class:`TPCID` > :class:`PlaneID`
  > :class:`WireID`;
- the readout one, :class:`CryostatID` > :class:`TPCSetID` > :class:`ROPID`,
  which is owned by the channel mapping.

Each identifier is an immutable tuple of non-negative indexes, one per
nesting level, with a validity flag. Invalidating an identifier keeps its
index values. Equality, hashing and ordering only consider the indexes
(lexicographically, then by depth), never the validity flag.
"""

from functools import total_ordering
from typing import Callable, Tuple

import numpy as np

__all__ = [
    "INVALID_INDEX",
    "ElementID",
    "CryostatID",
    "TPCID",
    "PlaneID",
    "WireID",
    "TPCSetID",
    "ROPID",
    "next_id",
]

# Value of the indexes of a default-constructed (invalid) identifier
INVALID_INDEX = int(np.iinfo(np.uint32).max)


@total_ordering
class ElementID:
    """Base class of all hierarchical identifiers.

    Attributes
    ----------
    indexes : Tuple[int]
        Index of the element at each nesting level, outermost first
    is_valid : bool
        Whether the identifier points to an element
    """

    fields: Tuple[str, ...] = ()
    parent_class = None

    __slots__ = ("_indexes", "_is_valid")

    def __init__(self, *args, is_valid=None):
        """Initialize the identifier.

        The identifier can be built in three ways:
        - without argument, it is invalid and all indexes are set to
          :data:`INVALID_INDEX`;
        - from one index per nesting level;
        - from an identifier of a parent (or the same) level, followed by the
          local indexes of the missing levels.

        Parameters
        ----------
        *args : Union[int, ElementID]
            Indexes, optionally preceded by a parent identifier
        is_valid : bool, optional
            Validity flag. If not specified, the identifier is valid, unless
            it is built from an invalid parent.
        """
        depth = len(self.fields)
        valid = True
        if len(args) == 0:
            indexes = (INVALID_INDEX,) * depth
            valid = False

        elif isinstance(args[0], ElementID):
            parent, local = args[0], args[1:]
            indexes = parent.indexes[: depth - len(local)] + tuple(local)
            valid = parent.is_valid

        else:
            indexes = args

        if len(indexes) != depth:
            raise TypeError(
                f"{type(self).__name__} needs {depth} indexes, got {len(indexes)}."
            )

        self._indexes = tuple(int(i) for i in indexes)
        self._is_valid = bool(valid if is_valid is None else is_valid)

    @classmethod
    def at_depth(cls, depth):
        """Returns the identifier class of a given nesting depth in the
        hierarchy of this class.

        Parameters
        ----------
        depth : int
            Nesting depth (1 for cryostats)

        Returns
        -------
        type
            Identifier class
        """
        klass = cls
        while len(klass.fields) > depth:
            klass = klass.parent_class
        assert len(klass.fields) == depth, f"No identifier at depth {depth}."

        return klass

    @property
    def indexes(self):
        """Indexes of the element, one per nesting level."""
        return self._indexes

    @property
    def is_valid(self):
        """Whether the identifier points to an element."""
        return self._is_valid

    @property
    def depth(self):
        """Nesting depth of the identifier (1 for cryostats)."""
        return len(self._indexes)

    @property
    def deepest_index(self):
        """Index of the element within its parent."""
        return self._indexes[-1]

    def mark_invalid(self):
        """Returns a copy of this identifier flagged as invalid.

        The index values are preserved.
        """
        return type(self)(*self._indexes, is_valid=False)

    def mark_valid(self):
        """Returns a copy of this identifier flagged as valid."""
        return type(self)(*self._indexes, is_valid=True)

    def parent(self):
        """Returns the identifier of the parent element."""
        assert self.parent_class is not None, "Top-level IDs have no parent."
        return self.parent_class(*self._indexes[:-1], is_valid=self._is_valid)

    def is_inside(self, other):
        """Checks whether this element is nested inside another one (or is it).

        Parameters
        ----------
        other : ElementID
            Identifier of the candidate container

        Returns
        -------
        bool
            `True` if `other` is a parent of (or the same as) this element
        """
        if not isinstance(self, type(other)):
            return False

        return self._indexes[: other.depth] == other.indexes

    def contains(self, other):
        """Checks whether another element is nested inside this one."""
        return other.is_inside(self)

    def _family(self):
        """Name of the fields, used to compare identifiers."""
        return type(self).fields

    def __bool__(self):
        return self._is_valid

    def __eq__(self, other):
        if not isinstance(other, ElementID):
            return NotImplemented
        return self._family() == other._family() and self._indexes == other.indexes

    def __lt__(self, other):
        if not isinstance(other, ElementID):
            return NotImplemented
        return self._indexes < other.indexes

    def __hash__(self):
        return hash((self._family(), self._indexes))

    def __iter__(self):
        return iter(self._indexes)

    def __str__(self):
        labels = [f"{self.label(i)}:{idx}" for i, idx in enumerate(self._indexes)]
        return " ".join(labels)

    def __repr__(self):
        args = ", ".join(f"{f}={i}" for f, i in zip(self.fields, self._indexes))
        valid = "" if self._is_valid else ", is_valid=False"
        return f"{type(self).__name__}({args}{valid})"

    @classmethod
    def label(cls, level):
        """Short label of a nesting level, used in printouts."""
        return cls.fields[level][0].upper()


class CryostatID(ElementID):
    """Identifier of a cryostat."""

    fields = ("cryostat",)

    @property
    def cryostat(self):
        """Index of the cryostat."""
        return self._indexes[0]

    def as_cryostat_id(self):
        """Returns the identifier of the cryostat this element belongs to."""
        return CryostatID(*self._indexes[:1], is_valid=self._is_valid)


class TPCID(CryostatID):
    """Identifier of a TPC within a cryostat."""

    fields = ("cryostat", "tpc")
    parent_class = CryostatID

    @property
    def tpc(self):
        """Index of the TPC within its cryostat."""
        return self._indexes[1]

    def as_tpc_id(self):
        """Returns the identifier of the TPC this element belongs to."""
        return TPCID(*self._indexes[:2], is_valid=self._is_valid)


class PlaneID(TPCID):
    """Identifier of a wire plane within a TPC."""

    fields = ("cryostat", "tpc", "plane")
    parent_class = TPCID

    @property
    def plane(self):
        """Index of the plane within its TPC."""
        return self._indexes[2]

    def as_plane_id(self):
        """Returns the identifier of the plane this element belongs to."""
        return PlaneID(*self._indexes[:3], is_valid=self._is_valid)


class WireID(PlaneID):
    """Identifier of a wire within a plane."""

    fields = ("cryostat", "tpc", "plane", "wire")
    parent_class = PlaneID

    @property
    def wire(self):
        """Index of the wire within its plane."""
        return self._indexes[3]

    def as_wire_id(self):
        """Returns a copy of this identifier."""
        return WireID(*self._indexes, is_valid=self._is_valid)


class TPCSetID(CryostatID):
    """Identifier of a set of TPCs sharing their readout."""

    fields = ("cryostat", "tpcset")
    parent_class = CryostatID

    @classmethod
    def label(cls, level):
        return ("C", "S")[level]

    @property
    def tpcset(self):
        """Index of the TPC set within its cryostat."""
        return self._indexes[1]

    def as_tpcset_id(self):
        """Returns the identifier of the TPC set this element belongs to."""
        return TPCSetID(*self._indexes[:2], is_valid=self._is_valid)


class ROPID(TPCSetID):
    """Identifier of a readout plane within a TPC set."""

    fields = ("cryostat", "tpcset", "rop")
    parent_class = TPCSetID

    @classmethod
    def label(cls, level):
        return ("C", "S", "R")[level]

    @property
    def rop(self):
        """Index of the readout plane within its TPC set."""
        return self._indexes[2]


def next_id(element_id: ElementID, num_siblings: Callable[[ElementID], int]):
    """Produces the identifier which follows a given one.

    The deepest index is incremented first. When it runs past the number of
    siblings, it is reset and the increment is carried to the parent level.
    Parents with no children at the requested depth are skipped. If the
    carry overflows the top level, the returned identifier is invalid and
    its top index is one past the last element (i.e. it is the global end
    identifier).

    Parameters
    ----------
    element_id : ElementID
        Identifier to start from
    num_siblings : Callable[[ElementID], int]
        Function which returns the number of elements at the depth of the
        identifier it is given, within that identifier's parent. It must
        return 0 if the parent does not exist.

    Returns
    -------
    ElementID
        Following identifier, of the same type as the input
    """
    cls = type(element_id)
    indexes = list(element_id.indexes)
    depth = len(indexes)
    level = depth - 1
    while True:
        indexes[level] += 1
        for l in range(level + 1, depth):
            indexes[l] = 0

        current = cls.at_depth(level + 1)(*indexes[: level + 1])
        if indexes[level] < num_siblings(current):
            # Make sure the first element of each deeper level exists
            empty = None
            for l in range(level + 1, depth):
                child = cls.at_depth(l + 1)(*indexes[: l + 1])
                if num_siblings(child) == 0:
                    empty = l
                    break

            if empty is None:
                return cls(*indexes)

            level = empty - 1
            continue

        if level == 0:
            return cls(*indexes, is_valid=False)

        level -= 1
