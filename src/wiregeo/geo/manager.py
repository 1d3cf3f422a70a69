"""Process-wide access to a single detector geometry.

The geometry core is built from a YAML configuration by
:func:`~wiregeo.geo.factories.geo_factory`. The manager keeps one such core
so that code which needs the detector description does not have to carry
it around. The node tree must still be loaded into the core with
:meth:`GeometryCore.load_geometry`.
"""

import inspect
from typing import Optional

from .base import GeometryCore
from .factories import geo_factory

__all__ = ["GeoManager"]


class GeoManager:
    """Holds the shared geometry core of the process."""

    _instance: Optional[GeometryCore] = None

    @classmethod
    def initialize(
        cls, detector: str, tag: Optional[str] = None, version: Optional[str] = None
    ) -> GeometryCore:
        """Builds the shared geometry core from a detector configuration.

        Parameters
        ----------
        detector : str
            Detector name, as in the `name` field of its configuration
        tag : str, optional
            Configuration tag, if several exist for the detector
        version : str, optional
            Configuration version (major, or major.minor)

        Returns
        -------
        GeometryCore
            Unloaded geometry core

        Raises
        ------
        ValueError
            If a geometry core was already built
        """
        if cls._instance is not None:
            raise ValueError(
                f"The geometry core of {cls._instance.name} is already set up, "
                "call `GeoManager.reset()` first."
            )

        cls._instance = geo_factory(detector, tag, version)

        return cls._instance

    @classmethod
    def initialize_or_get(
        cls, detector: str, tag: Optional[str] = None, version: Optional[str] = None
    ) -> GeometryCore:
        """Returns the shared geometry core, building it if needed.

        The existing core is kept if its detector name matches (ignoring case)
        and, when a tag is requested, if its tag matches too. Otherwise it is
        replaced by a new, unloaded core.

        Parameters
        ----------
        detector : str
            Detector name
        tag : str, optional
            Configuration tag
        version : str, optional
            Configuration version, only used when a new core is built

        Returns
        -------
        GeometryCore
            Shared geometry core
        """
        current = cls._instance
        if (
            current is None
            or current.name.lower() != detector.lower()
            or (tag is not None and current.tag != tag)
        ):
            cls._instance = geo_factory(detector, tag, version)

        return cls._instance

    @classmethod
    def is_initialized(cls) -> bool:
        """Whether a shared geometry core exists."""
        return cls._instance is not None

    @classmethod
    def get_instance(cls) -> GeometryCore:
        """Returns the shared geometry core.

        Raises
        ------
        ValueError
            If no core was built. The message names the caller.
        """
        if cls._instance is None:
            # Point at the code which asked for the geometry
            frame_info = inspect.stack()[1]
            frame = frame_info.frame
            func = frame.f_code.co_name
            cls_obj = frame.f_locals.get("self")
            class_name = cls_obj.__class__.__name__ if cls_obj else None

            location = f"{class_name}.{func}()" if class_name else f"{func}()"

            raise ValueError(
                "No detector geometry has been set up.\n"
                f"Attempted access from: {location}\n"
                f"File: {frame_info.filename}:{frame_info.lineno}\n\n"
                "Build the geometry core first with either:\n"
                "    GeoManager.initialize(detector='your_detector_name')\n"
                "    GeoManager.initialize_or_get(detector='your_detector_name')\n"
                "then load its node tree with `load_geometry`."
            )

        return cls._instance

    @classmethod
    def get_instance_if_initialized(cls) -> Optional[GeometryCore]:
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Unloads and drops the shared geometry core."""
        if cls._instance is not None:
            cls._instance.clear()
        cls._instance = None
