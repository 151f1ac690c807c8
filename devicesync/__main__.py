"""Entry point for python -m devicesync execution.

This module allows running devicesync as a module:
    python -m devicesync status
    python -m devicesync run devices/1 --token SECRET
    python -m devicesync --help
"""

from devicesync.cli import run

if __name__ == "__main__":
    run()
