"""Kubernetes downscaler: layered scaling configuration and time window scheduling."""

__version__ = "0.1.0"
