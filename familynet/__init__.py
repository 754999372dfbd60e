"""familynet package initialization."""

from importlib.metadata import version, PackageNotFoundError

from .api import build_session, run_pipeline

__all__ = ["__version__", "build_session", "run_pipeline"]

try:
    __version__ = version("familynet")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"
