"""Top-level module of the wiregeo source code."""

from .version import __version__

# Import the main geometry entry points
from .geo import GeoManager, GeometryCore, geo_factory
