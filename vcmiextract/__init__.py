"""Extract LOD, SND, VID, PAK and DEF game archives and convert their images to PNG."""

__version__ = "1.0.0"
__all__ = ["__version__"]