"""smfarm: soil sensor normalization and advisory engine."""

__version__ = "0.1.0"
