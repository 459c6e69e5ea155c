"""HealSage: retrieval-augmented medical document chat."""

__version__ = "0.1.0"
