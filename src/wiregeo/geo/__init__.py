"""Module with the geometry of wire-readout liquid argon TPC detectors.

This includes multiple submodules:
- `ids.py` includes the hierarchical element identifiers
- `node.py`, `transform.py` and `walker.py` describe and walk the node tree
- `detector/` includes the element classes (cryostats, TPCs, planes, ...)
- `builder.py`, `sorter.py` and `channel_map.py` are the loading plugins
- `intersect.py` includes the wire intersection kernels
- `base.py` includes the :class:`GeometryCore` which ties it all together
"""

from .base import ElementSequence, GeometryCore, WireIDIntersection
from .builder import GeometryBuilderStandard
from .channel_map import (
    INVALID_CHANNEL,
    ChannelMapAlg,
    ChannelMapStandardAlg,
    GeometryData,
)
from .enums import Orientation, SignalType, View
from .errors import GeometryError, GeometryNotFoundError, InvalidInputError
from .factories import geo_factory
from .ids import (
    INVALID_INDEX,
    ROPID,
    TPCID,
    CryostatID,
    PlaneID,
    TPCSetID,
    WireID,
)
from .manager import GeoManager
from .node import BoxShape, GeoMaterial, GeoNode, GeoVolume, TubeShape
from .sorter import GeoObjectSorterStandard
