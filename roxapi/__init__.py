"""GitHub API client with alias and cache layers, a batch runner and version helpers."""

__version__ = "0.1.0"

__all__ = [
    "alias",
    "batch",
    "cache",
    "github",
    "provider",
    "style",
    "version",
]