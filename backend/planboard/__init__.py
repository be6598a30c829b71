"""Planboard: entity relations with lookup and rollup fields."""

__version__ = "0.1.0"
