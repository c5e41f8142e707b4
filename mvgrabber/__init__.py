"""Device-agnostic frame grabbing: devices, grabbers, frame pools, recorders and disk streaming."""

__version__ = "0.1.0"