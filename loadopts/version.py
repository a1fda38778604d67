"""Version information for loadopts."""

__version__ = "0.1.0"
