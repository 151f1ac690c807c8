"""devicesync - connectivity and offline sync for a single remote device."""

__version__ = "0.1.0"
