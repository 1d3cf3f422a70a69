"""Cryostat geometry description."""

from typing import List, Optional, Union

import numpy as np
from scipy.spatial.distance import cdist

from ..errors import GeometryNotFoundError
from ..ids import INVALID_INDEX, CryostatID, TPCID
from .base import Box
from .optical import OpDetGeo
from .tpc import TPCGeo

__all__ = ["CryostatGeo"]


class CryostatGeo(Box):
    """Class which holds all properties of a cryostat, its TPCs and its
    optical detectors.

    Attributes
    ----------
    transform : LocalTransformation
        Local-to-world transformation of the cryostat
    half_sizes : np.ndarray
        (3) Half dimensions of the cryostat box in its local frame
    tpcs : List[TPCGeo]
        Ordered list of TPCs (index is the TPC number)
    opdets : List[OpDetGeo]
        Ordered list of optical detectors
    name : str
        Name of the cryostat volume
    opdet_name : str
        Name of the optical detector volumes
    id : CryostatID
        Identifier of the cryostat (only valid after sorting)
    """

    def __init__(
        self,
        transform,
        half_sizes: np.ndarray,
        tpcs: List[TPCGeo],
        opdets: Optional[List[OpDetGeo]] = None,
        name: str = "",
        opdet_name: str = "",
    ):
        """Initialize the cryostat.

        Parameters
        ----------
        transform : LocalTransformation
            Local-to-world transformation of the cryostat
        half_sizes : np.ndarray
            (3) Half dimensions of the cryostat box in its local frame
        tpcs : List[TPCGeo]
            TPCs of the cryostat
        opdets : List[OpDetGeo], optional
            Optical detectors of the cryostat
        name : str, default ''
            Name of the cryostat volume
        opdet_name : str, default ''
            Name of the optical detector volumes
        """
        # Initialize the underlying box object
        box = Box.from_transform(transform, np.asarray(half_sizes, dtype=float))
        super().__init__(box.lower, box.upper)

        # Store the cryostat properties
        self.transform = transform
        self.half_sizes = np.asarray(half_sizes, dtype=float)
        self.tpcs = list(tpcs)
        self.opdets = list(opdets) if opdets is not None else []
        self.name = name
        self.opdet_name = opdet_name
        self.id = CryostatID()

    # Element access
    @property
    def num_tpcs(self) -> int:
        """Number of TPCs in the cryostat."""
        return len(self.tpcs)

    def has_tpc(self, index: Union[int, TPCID]) -> bool:
        """Whether a TPC number exists in this cryostat."""
        if isinstance(index, TPCID):
            index = index.tpc
        return 0 <= index < self.num_tpcs

    def tpc(self, index: Union[int, TPCID]) -> TPCGeo:
        """Returns a TPC by number.

        Parameters
        ----------
        index : Union[int, TPCID]
            TPC number (or identifier)

        Returns
        -------
        TPCGeo
            Requested TPC
        """
        if not self.has_tpc(index):
            raise GeometryNotFoundError(
                f"TPC {index} does not exist in cryostat {self.id} "
                f"({self.num_tpcs} TPCs)."
            )
        if isinstance(index, TPCID):
            index = index.tpc

        return self.tpcs[index]

    @property
    def num_op_dets(self) -> int:
        """Number of optical detectors in the cryostat."""
        return len(self.opdets)

    def op_det(self, index: int) -> OpDetGeo:
        """Returns an optical detector by number."""
        if not 0 <= index < self.num_op_dets:
            raise GeometryNotFoundError(
                f"Optical detector {index} does not exist in cryostat {self.id} "
                f"({self.num_op_dets} detectors)."
            )

        return self.opdets[index]

    @property
    def max_planes(self) -> int:
        """Largest number of planes in a TPC of this cryostat."""
        return max((tpc.num_planes for tpc in self.tpcs), default=0)

    @property
    def max_wires(self) -> int:
        """Largest number of wires in a plane of this cryostat."""
        return max((tpc.max_wires for tpc in self.tpcs), default=0)

    def __len__(self):
        return len(self.tpcs)

    def __iter__(self):
        return iter(self.tpcs)

    def __getitem__(self, index):
        return self.tpc(index)

    # Spatial queries
    def find_tpc_at_position(self, point: np.ndarray, wiggle: float = 1.0) -> TPCID:
        """Finds the TPC containing a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates
        wiggle : float, default 1.
            Scaling factor of the TPC half dimensions

        Returns
        -------
        TPCID
            Identifier of the first TPC containing the point. If none does, an
            invalid identifier with the cryostat number filled in.
        """
        for tpc in self.tpcs:
            if tpc.contains_position(point, wiggle):
                return tpc.id

        return TPCID(self.id, INVALID_INDEX, is_valid=False)

    def position_to_tpc(self, point: np.ndarray, wiggle: float = 1.0) -> TPCGeo:
        """Returns the TPC containing a point, raises if there is none."""
        tpc_id = self.find_tpc_at_position(point, wiggle)
        if not tpc_id:
            raise GeometryNotFoundError(
                f"Can't find any TPC in cryostat {self.id} at position {point}."
            )

        return self.tpc(tpc_id)

    def get_closest_op_det(self, point: np.ndarray) -> int:
        """Finds the optical detector closest to a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates

        Returns
        -------
        int
            Number of the closest optical detector, :data:`INVALID_INDEX` if
            the cryostat has none
        """
        if self.num_op_dets == 0:
            return INVALID_INDEX

        centers = np.asarray([opdet.center for opdet in self.opdets])
        dists = cdist(np.asarray(point, dtype=float)[None, :], centers)

        return int(np.argmin(dists[0]))

    # Sorting protocol
    def sort_sub_volumes(self, sorter):
        """Sorts the TPCs and optical detectors, then the TPC contents."""
        sorter.sort_tpcs(self.tpcs)
        sorter.sort_op_dets(self.opdets)
        for tpc in self.tpcs:
            tpc.sort_sub_volumes(sorter)

    def update_after_sorting(self, cryostat_id: CryostatID):
        """Sets the final identifier and updates the TPCs.

        Parameters
        ----------
        cryostat_id : CryostatID
            Final identifier of the cryostat
        """
        self.id = cryostat_id
        for t, tpc in enumerate(self.tpcs):
            tpc.update_after_sorting(TPCID(cryostat_id, t))

    # Coordinate transformations
    def to_world_coords(self, local: np.ndarray) -> np.ndarray:
        """Transforms a point from the cryostat local frame to the world."""
        return self.transform.to_world_coords(local)

    def to_local_coords(self, world: np.ndarray) -> np.ndarray:
        """Transforms a point from the world to the cryostat local frame."""
        return self.transform.to_local_coords(world)

    def cryostat_info(self, indent: str = "", verbosity: int = 1) -> str:
        """Describes the cryostat.

        Parameters
        ----------
        indent : str, default ''
            Indentation of the lines after the first one
        verbosity : int, default 1
            Amount of information

        Returns
        -------
        str
            Description of the cryostat
        """
        out = f"cryostat {self.id}"
        if verbosity <= 0:
            return out

        out += (
            f" (name: {self.name}) from {self.lower.tolist()} to "
            f"{self.upper.tolist()} cm"
        )
        if verbosity <= 1:
            return out

        out += (
            f"\n{indent}{self.num_tpcs} TPCs, {self.num_op_dets} optical "
            f"detectors ({self.opdet_name})"
        )

        return out

    def __repr__(self):
        return f"CryostatGeo(id={self.id}, tpcs={self.num_tpcs})"
