"""Utility modules for devicesync."""

from devicesync.utils.atomic_write import atomic_write_json

__all__ = ["atomic_write_json"]
