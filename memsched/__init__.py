"""Memory-aware scheduling of weighted computation graphs: heuristic schedulers, local improvement, an exact solver for small graphs, and random graph generators."""

__version__ = "0.1.0"
__all__ = ["__version__"]