"""Version information for google-mcp."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("google-mcp")
except PackageNotFoundError:
    # Running from a source checkout without installation
    __version__ = "0.1.0"
