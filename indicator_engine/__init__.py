"""Chart indicator engine: technical indicators and chart indicator state."""

__version__ = "0.1.0"
