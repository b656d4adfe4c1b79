"""Viking Legacy: expeditions, faction armies, battles and sieges."""

__version__ = "0.1.0"

__all__ = ["__version__"]
