"""Readers for printed circuit board layout and boardview file formats."""

__version__ = "0.1.0"