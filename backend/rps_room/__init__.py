"""Paper Scissors Stone Shoot rooms over a shared store."""

__version__ = "1.0.0"
