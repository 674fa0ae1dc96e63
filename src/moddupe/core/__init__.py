"""
Core fingerprinting engine: decoder, hashers, scanner, catalogue, filters and reporter.

This package contains the foundation of moddupe:
- ProTrackerDecoder: reference Decoder turning .mod bytes into a DecodedModule
- PatternHasherImpl: 64-bit FNV-1a over the note stream of every primary subsong
- SampleHasherImpl: xxHash64 per sample, plus exact length predicates
- ModuleScannerImpl: lazy directory traversal producing ModuleRecords
- CatalogueStore: sqlite3-backed reference catalogue keyed by fingerprint
- FilterPipeline: per-entry exclusion followed by per-group inclusion
- DuplicateReporter: lookup, filtering and report rendering

All components are pure Python with no GUI dependencies.
"""

from .interfaces import Decoder, DecodeError
from .decoder import ProTrackerDecoder, DecoderRegistry
from .hasher import PatternHasherImpl, SampleHasherImpl, ContentHasherImpl, SENTINEL_FINGERPRINT
from .scanner import ModuleScannerImpl, ModuleFingerprinter
from .grouper import EntryGrouperImpl
from .stages import ExclusionStage, InclusionStage, FilterPipeline
from .catalogue import CatalogueStore, CatalogueUnavailableError
from .reporter import DuplicateReporter
from .models import (
    Command, Pattern, Subsong, DecodedSample, DecodedModule,
    ModuleRecord, SampleRecord, CatalogueEntry, MatchGroup,
    FilterCriteria, MatchParams, MatchMode, LengthUnit, ScanStats)

__all__ = [
    "Decoder",
    "DecodeError",
    "ProTrackerDecoder",
    "DecoderRegistry",
    "PatternHasherImpl",
    "SampleHasherImpl",
    "ContentHasherImpl",
    "SENTINEL_FINGERPRINT",
    "ModuleScannerImpl",
    "ModuleFingerprinter",
    "EntryGrouperImpl",
    "ExclusionStage",
    "InclusionStage",
    "FilterPipeline",
    "CatalogueStore",
    "CatalogueUnavailableError",
    "DuplicateReporter",
    "Command",
    "Pattern",
    "Subsong",
    "DecodedSample",
    "DecodedModule",
    "ModuleRecord",
    "SampleRecord",
    "CatalogueEntry",
    "MatchGroup",
    "FilterCriteria",
    "MatchParams",
    "MatchMode",
    "LengthUnit",
    "ScanStats",
]
