"""Stwipe turns YouTube playlists into short, filtered study segments."""

__version__ = "0.1.0"

__all__ = ["__version__"]
