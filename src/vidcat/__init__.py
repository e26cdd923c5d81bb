"""Video catalog tooling: URL resolution, metadata enrichment, and catalog persistence."""

__version__ = "0.1.0"

__all__ = ["__version__"]
