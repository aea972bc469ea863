"""VidStream insights core: request caching and creator analytics scoring."""

__version__ = "0.1.0"
