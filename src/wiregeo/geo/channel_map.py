"""Readout channel mapping.

The channel mapping assigns readout channel numbers to the wires, groups
the TPCs into TPC sets and the wire planes into readout planes (ROP). The
geometry core only queries it, it never inspects how channels are numbered.

:class:`ChannelMapAlg` defines the query interface, while
:class:`ChannelMapStandardAlg` implements the standard mapping: one TPC set
per TPC, one readout plane per wire plane and sequential channel numbers.
"""

from abc import ABC, abstractmethod
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from wiregeo.utils.logger import logger

from .enums import SignalType, View
from .errors import GeometryNotFoundError
from .ids import INVALID_INDEX, ROPID, TPCID, CryostatID, PlaneID, TPCSetID, WireID
from .sorter import GeoObjectSorterStandard

__all__ = ["INVALID_CHANNEL", "GeometryData", "ChannelMapAlg", "ChannelMapStandardAlg"]

# Channel number returned when there is no valid channel
INVALID_CHANNEL = INVALID_INDEX


@dataclass(eq=False)
class GeometryData:
    """Geometry elements handed to the channel mapping on initialization.

    Attributes
    ----------
    cryostats : List[CryostatGeo]
        Sorted cryostats
    aux_dets : List[AuxDetGeo]
        Sorted auxiliary detectors
    """

    cryostats: list = field(default_factory=list)
    aux_dets: list = field(default_factory=list)


class ChannelMapAlg(ABC):
    """Interface of a readout channel mapping."""

    @abstractmethod
    def initialize(self, geo_data: GeometryData):
        """Builds the mapping for a sorted geometry."""

    @abstractmethod
    def uninitialize(self):
        """Drops the mapping."""

    def sorter(self):
        """Returns the sorter which defines the element numbering."""
        return GeoObjectSorterStandard()

    # Channels
    @abstractmethod
    def num_channels(self, ropid: ROPID = None) -> int:
        """Number of channels (in the whole detector, or in a readout plane)."""

    @abstractmethod
    def has_channel(self, channel: int) -> bool:
        """Whether a channel number exists."""

    @abstractmethod
    def channel_to_wire(self, channel: int) -> List[WireID]:
        """Wires connected to a channel (empty for an invalid channel)."""

    @abstractmethod
    def plane_wire_to_channel(self, wire_id: WireID) -> int:
        """Channel a wire is connected to."""

    @abstractmethod
    def signal_type(self, channel: int) -> SignalType:
        """Type of signal carried by a channel."""

    @abstractmethod
    def signal_type_for_rop(self, ropid: ROPID) -> SignalType:
        """Type of signal carried by the channels of a readout plane."""

    @abstractmethod
    def view(self, channel: int) -> View:
        """View of the wires connected to a channel."""

    @abstractmethod
    def view_for_rop(self, ropid: ROPID) -> View:
        """View of the wires of a readout plane."""

    @abstractmethod
    def first_channel_in_rop(self, ropid: ROPID) -> int:
        """First channel of a readout plane."""

    @abstractmethod
    def channel_to_rop(self, channel: int) -> ROPID:
        """Readout plane of a channel."""

    # TPC sets
    @abstractmethod
    def num_tpc_sets(self, cryostat_id: CryostatID) -> int:
        """Number of TPC sets in a cryostat."""

    @abstractmethod
    def max_tpc_sets(self) -> int:
        """Largest number of TPC sets in a cryostat."""

    @abstractmethod
    def has_tpc_set(self, tpcset_id: TPCSetID) -> bool:
        """Whether a TPC set exists."""

    @abstractmethod
    def tpc_to_tpc_set(self, tpc_id: TPCID) -> TPCSetID:
        """TPC set a TPC belongs to."""

    @abstractmethod
    def tpc_set_to_tpcs(self, tpcset_id: TPCSetID) -> List[TPCID]:
        """TPCs of a TPC set."""

    # Readout planes
    @abstractmethod
    def num_rops(self, tpcset_id: TPCSetID) -> int:
        """Number of readout planes in a TPC set."""

    @abstractmethod
    def max_rops(self) -> int:
        """Largest number of readout planes in a TPC set."""

    @abstractmethod
    def has_rop(self, ropid: ROPID) -> bool:
        """Whether a readout plane exists."""

    @abstractmethod
    def wire_plane_to_rop(self, plane_id: PlaneID) -> ROPID:
        """Readout plane a wire plane belongs to."""

    @abstractmethod
    def rop_to_wire_planes(self, ropid: ROPID) -> List[PlaneID]:
        """Wire planes of a readout plane."""

    @abstractmethod
    def rop_to_tpcs(self, ropid: ROPID) -> List[TPCID]:
        """TPCs the wire planes of a readout plane belong to."""

    # Optical channels
    @abstractmethod
    def num_op_channels(self, num_op_dets: int) -> int:
        """Number of optical channels."""

    @abstractmethod
    def max_op_channel(self, num_op_dets: int) -> int:
        """Largest optical channel number, plus one."""

    @abstractmethod
    def num_op_hardware_channels(self, opdet: int) -> int:
        """Number of hardware channels of an optical detector."""

    @abstractmethod
    def op_channel(self, opdet: int, hardware_channel: int = 0) -> int:
        """Optical channel of a hardware channel of an optical detector."""

    @abstractmethod
    def op_det_from_op_channel(self, op_channel: int) -> int:
        """Optical detector an optical channel belongs to."""

    @abstractmethod
    def hardware_channel_from_op_channel(self, op_channel: int) -> int:
        """Hardware channel of an optical channel within its detector."""

    @abstractmethod
    def is_valid_op_channel(self, op_channel: int, num_op_dets: int) -> bool:
        """Whether an optical channel exists."""

    # Auxiliary detectors
    def nearest_aux_det(self, point, aux_dets, tolerance: float = 0.0) -> int:
        """Finds the auxiliary detector containing a point.

        Parameters
        ----------
        point : np.ndarray
            (3) Point coordinates
        aux_dets : List[AuxDetGeo]
            Auxiliary detectors to look into
        tolerance : float, default 0.
            Amount by which the detectors are grown on each side, in cm

        Returns
        -------
        int
            Index of the first detector containing the point

        Raises
        ------
        GeometryNotFoundError
            If no detector contains the point
        """
        for i, aux_det in enumerate(aux_dets):
            if aux_det.contains_position(point, tolerance):
                return i

        raise GeometryNotFoundError(
            f"Can't find an auxiliary detector containing {np.asarray(point)}."
        )

    def nearest_sensitive_aux_det(
        self, point, aux_dets, tolerance: float = 0.0
    ) -> Tuple[int, int]:
        """Finds the auxiliary detector sensitive volume containing a point.

        Returns
        -------
        int
            Index of the auxiliary detector
        int
            Index of the sensitive volume within the detector
        """
        ad = self.nearest_aux_det(point, aux_dets, tolerance)
        sv = aux_dets[ad].find_sensitive_index(point, tolerance)

        return ad, sv

    def channel_to_aux_det(self, aux_dets, name: str, channel: int) -> int:
        """Finds the auxiliary detector of a given name.

        Parameters
        ----------
        aux_dets : List[AuxDetGeo]
            Auxiliary detectors to look into
        name : str
            Name of the auxiliary detector
        channel : int
            Channel within the detector

        Returns
        -------
        int
            Index of the auxiliary detector
        """
        for i, aux_det in enumerate(aux_dets):
            if aux_det.name == name:
                return i

        raise GeometryNotFoundError(
            f"No auxiliary detector named '{name}' (channel {channel})."
        )

    def channel_to_sensitive_aux_det(
        self, aux_dets, name: str, channel: int
    ) -> Tuple[int, int]:
        """Finds the sensitive volume read out by a channel of an auxiliary
        detector (one channel per sensitive volume).

        Returns
        -------
        int
            Index of the auxiliary detector
        int
            Index of the sensitive volume
        """
        ad = self.channel_to_aux_det(aux_dets, name, channel)
        if not 0 <= channel < aux_dets[ad].num_sensitive:
            raise GeometryNotFoundError(
                f"Auxiliary detector '{name}' has no channel {channel}."
            )

        return ad, channel


class ChannelMapStandardAlg(ChannelMapAlg):
    """Standard channel mapping.

    - Channels are numbered sequentially over cryostats, TPCs, planes and
      wires, in this order.
    - TPC set `s` of cryostat `c` is TPC `(c, s)`; readout plane `r` of a TPC
      set is its plane `r`.
    - The last plane of each TPC collects, the others induce.
    - Each optical detector has a single channel, numbered as the detector.
    """

    def __init__(self):
        """Initialize an empty mapping."""
        self.uninitialize()

    def initialize(self, geo_data: GeometryData):
        """Numbers the channels of a sorted geometry.

        Parameters
        ----------
        geo_data : GeometryData
            Sorted geometry elements
        """
        self.uninitialize()
        channel = 0
        for cryo in geo_data.cryostats:
            self._tpc_counts.append(cryo.num_tpcs)
            for tpc in cryo.tpcs:
                for p, plane in enumerate(tpc.planes):
                    is_last = p == tpc.num_planes - 1
                    self._planes.append(plane.id)
                    self._first_channels.append(channel)
                    self._num_wires.append(plane.num_wires)
                    self._views.append(plane.view)
                    self._signal_types.append(
                        SignalType.COLLECTION if is_last else SignalType.INDUCTION
                    )
                    self._plane_index[plane.id] = len(self._planes) - 1
                    channel += plane.num_wires

        self._num_channels = channel
        logger.info(
            "Standard channel mapping initialized with %d channels in %d planes.",
            channel,
            len(self._planes),
        )

    def uninitialize(self):
        """Drops the mapping."""
        self._tpc_counts = []
        self._planes = []
        self._first_channels = []
        self._num_wires = []
        self._views = []
        self._signal_types = []
        self._plane_index = {}
        self._num_channels = 0

    def _plane_of_channel(self, channel: int) -> int:
        """Index of the plane of a channel in the flat plane list (-1 if none)."""
        if not self.has_channel(channel):
            return -1

        return bisect_right(self._first_channels, channel) - 1

    def _rop_index(self, ropid: ROPID) -> int:
        """Index of the plane of a readout plane in the flat list (-1 if none)."""
        if not self.has_rop(ropid):
            return -1

        return self._plane_index[PlaneID(ropid.cryostat, ropid.tpcset, ropid.rop)]

    # Channels
    def num_channels(self, ropid: ROPID = None) -> int:
        if ropid is None:
            return self._num_channels

        index = self._rop_index(ropid)
        return self._num_wires[index] if index >= 0 else 0

    def has_channel(self, channel: int) -> bool:
        return 0 <= channel < self._num_channels

    def channel_to_wire(self, channel: int) -> List[WireID]:
        index = self._plane_of_channel(channel)
        if index < 0:
            return []

        wire = channel - self._first_channels[index]
        return [WireID(self._planes[index], wire)]

    def plane_wire_to_channel(self, wire_id: WireID) -> int:
        index = self._plane_index.get(wire_id.as_plane_id(), -1)
        if index < 0 or not 0 <= wire_id.wire < self._num_wires[index]:
            logger.warning("Wire %s is not mapped to any channel.", wire_id)
            return INVALID_CHANNEL

        return self._first_channels[index] + wire_id.wire

    def signal_type(self, channel: int) -> SignalType:
        index = self._plane_of_channel(channel)
        return self._signal_types[index] if index >= 0 else SignalType.MYSTERY

    def signal_type_for_rop(self, ropid: ROPID) -> SignalType:
        index = self._rop_index(ropid)
        return self._signal_types[index] if index >= 0 else SignalType.MYSTERY

    def view(self, channel: int) -> View:
        index = self._plane_of_channel(channel)
        return self._views[index] if index >= 0 else View.UNKNOWN

    def view_for_rop(self, ropid: ROPID) -> View:
        index = self._rop_index(ropid)
        return self._views[index] if index >= 0 else View.UNKNOWN

    def first_channel_in_rop(self, ropid: ROPID) -> int:
        index = self._rop_index(ropid)
        return self._first_channels[index] if index >= 0 else INVALID_CHANNEL

    def channel_to_rop(self, channel: int) -> ROPID:
        index = self._plane_of_channel(channel)
        if index < 0:
            return ROPID()

        plane_id = self._planes[index]
        return ROPID(plane_id.cryostat, plane_id.tpc, plane_id.plane)

    # TPC sets
    def num_tpc_sets(self, cryostat_id: CryostatID) -> int:
        if not 0 <= cryostat_id.cryostat < len(self._tpc_counts):
            return 0

        return self._tpc_counts[cryostat_id.cryostat]

    def max_tpc_sets(self) -> int:
        return max(self._tpc_counts, default=0)

    def has_tpc_set(self, tpcset_id: TPCSetID) -> bool:
        return 0 <= tpcset_id.tpcset < self.num_tpc_sets(tpcset_id)

    def tpc_to_tpc_set(self, tpc_id: TPCID) -> TPCSetID:
        tpcset_id = TPCSetID(tpc_id.cryostat, tpc_id.tpc)
        if not tpc_id or not self.has_tpc_set(tpcset_id):
            return TPCSetID()

        return tpcset_id

    def tpc_set_to_tpcs(self, tpcset_id: TPCSetID) -> List[TPCID]:
        if not self.has_tpc_set(tpcset_id):
            return []

        return [TPCID(tpcset_id.cryostat, tpcset_id.tpcset)]

    # Readout planes
    def num_rops(self, tpcset_id: TPCSetID) -> int:
        if not self.has_tpc_set(tpcset_id):
            return 0

        return sum(
            1
            for plane_id in self._planes
            if (plane_id.cryostat, plane_id.tpc) == tuple(tpcset_id.indexes)
        )

    def max_rops(self) -> int:
        counts = {}
        for plane_id in self._planes:
            key = plane_id.as_tpc_id()
            counts[key] = counts.get(key, 0) + 1

        return max(counts.values(), default=0)

    def has_rop(self, ropid: ROPID) -> bool:
        return PlaneID(*ropid.indexes) in self._plane_index

    def wire_plane_to_rop(self, plane_id: PlaneID) -> ROPID:
        if plane_id.as_plane_id() not in self._plane_index:
            return ROPID()

        return ROPID(*plane_id.as_plane_id().indexes)

    def rop_to_wire_planes(self, ropid: ROPID) -> List[PlaneID]:
        if not self.has_rop(ropid):
            return []

        return [PlaneID(*ropid.indexes)]

    def rop_to_tpcs(self, ropid: ROPID) -> List[TPCID]:
        if not self.has_rop(ropid):
            return []

        return [TPCID(ropid.cryostat, ropid.tpcset)]

    # Optical channels
    def num_op_channels(self, num_op_dets: int) -> int:
        return num_op_dets

    def max_op_channel(self, num_op_dets: int) -> int:
        return self.num_op_channels(num_op_dets)

    def num_op_hardware_channels(self, opdet: int) -> int:
        return 1

    def op_channel(self, opdet: int, hardware_channel: int = 0) -> int:
        return opdet

    def op_det_from_op_channel(self, op_channel: int) -> int:
        return op_channel

    def hardware_channel_from_op_channel(self, op_channel: int) -> int:
        return 0

    def is_valid_op_channel(self, op_channel: int, num_op_dets: int) -> bool:
        return 0 <= op_channel < self.num_op_channels(num_op_dets)
