from skill_builder import __version__

__all__ = ["__version__"]
