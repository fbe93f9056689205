"""Agent session and process orchestration for markerdown."""

__version__ = "0.1.0"
