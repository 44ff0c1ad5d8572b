"""Durable delivery of LytSpot contact and budget form submissions."""

__version__ = "0.1.0"
