"""xsetup — bootstrap an Ubuntu development machine."""

__version__ = "0.1.0"
