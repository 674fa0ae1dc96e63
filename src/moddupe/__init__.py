"""
moddupe: fingerprint tracker modules and find duplicates in a reference catalogue.

Core features:
- Pattern fingerprint: 64-bit FNV-1a over the note stream of every primary subsong
- Sample fingerprint: xxHash64 per sample, with exact length search
- sqlite3 catalogue with build, lookup, full listing and intra-catalogue duplicates
- Two-stage filters: per-entry exclusion, then per-group inclusion
- CLI interface for headless/server usage
"""

# Get version
try:
    from importlib.metadata import version as _version
    __version__ = _version("moddupe")
except Exception:
    try:
        import tomllib  # Python 3.11+
    except ImportError:
        import tomli as tomllib  # Python < 3.11: pip install tomli

    with open("pyproject.toml", "rb") as f:
        __version__ = tomllib.load(f)["project"]["version"]

# Public API, only what users should import directly
from moddupe.commands import BuildCommand, MatchCommand
from moddupe.core import (
    CatalogueStore, DuplicateReporter, FilterCriteria, FilterPipeline, MatchGroup, MatchMode,
    MatchParams, ModuleRecord, ProTrackerDecoder, PatternHasherImpl, SampleHasherImpl)
from moddupe.services import CatalogueService, FileService

__all__ = [
    "BuildCommand",
    "MatchCommand",
    "CatalogueStore",
    "DuplicateReporter",
    "FilterCriteria",
    "FilterPipeline",
    "MatchGroup",
    "MatchMode",
    "MatchParams",
    "ModuleRecord",
    "ProTrackerDecoder",
    "PatternHasherImpl",
    "SampleHasherImpl",
    "CatalogueService",
    "FileService",
    "__version__",
]
