"""gitbahn: split a bulk working-tree change into a paced commit history."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("gitbahn")
except PackageNotFoundError:
    # Fallback for development mode
    __version__ = "0.0.0-dev"
