"""Moon phase, illumination, moonrise and moonset, with a small pygame window."""

__version__ = "0.1.0"
__all__ = ["__version__"]