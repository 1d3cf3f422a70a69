"""Detector element geometry classes.

This module contains the element objects of the geometry hierarchy:
- :class:`CryostatGeo` owns :class:`TPCGeo` and :class:`OpDetGeo` objects
- :class:`TPCGeo` owns :class:`PlaneGeo` objects
- :class:`PlaneGeo` owns :class:`WireGeo` objects
- :class:`AuxDetGeo` owns :class:`AuxDetSensitiveGeo` objects
"""

from .auxdet import AuxDetGeo, AuxDetSensitiveGeo
from .base import Box
from .cryostat import CryostatGeo
from .optical import OpDetGeo
from .plane import PlaneGeo
from .tpc import TPCGeo
from .wire import WireGeo
