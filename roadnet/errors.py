"""
Exception types raised by the roadnet pipeline
"""


class RoadnetError(Exception):
    """Base class for fatal pipeline errors"""


class InputError(RoadnetError):
    """Input file missing or unreadable"""


class OSMParseError(InputError):
    """Input document is not a usable OSM document"""


class DownloadError(RoadnetError):
    """Every Overpass mirror failed"""


class ConfigError(RoadnetError, ValueError):
    """Configuration is invalid"""
