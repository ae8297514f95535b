"""Copy the images referenced by a document into an output directory."""

from .version import __version__

__all__ = ["__version__"]
