"""Storey Builder: building floor surfaces → level-anchored floors with openings."""

__version__ = "0.1.0"
