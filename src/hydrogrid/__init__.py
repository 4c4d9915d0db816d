# src/hydrogrid/__init__.py
try:
    from .hydrogrid_version import __version__
except ImportError:
    try:
        from importlib.metadata import version, PackageNotFoundError
        __version__ = version("hydrogrid")
    except (ImportError, PackageNotFoundError):
        __version__ = "0.0.0"

from .core import HydroGrid, RunSummary

__all__ = ["HydroGrid", "RunSummary", "__version__"]
