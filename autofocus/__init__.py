"""Sweep-based autofocus for a V4L2 camera, motorised stage and focus actuator on Linux."""

__version__ = "0.1.0"