"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models for decoded modules, fingerprinted records, catalogue entries and filters.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Tuple, Union
import os
import re
import time
from enum import Enum


# =============================
# Enums
# =============================

class MatchMode(Enum):
    """
    Which fingerprint is used to match local files against the catalogue.
    """
    PATTERN = "pattern"
    SAMPLE = "sample"

    @property
    def display_name(self) -> str:
        """Short name printed in match headers."""
        mapping = {
            MatchMode.PATTERN: "Pattern",
            MatchMode.SAMPLE: "Sample",
        }
        return mapping.get(self, self.value)

    @property
    def description(self) -> str:
        mapping = {
            MatchMode.PATTERN:
                "Note stream of every primary subsong (default)",
            MatchMode.SAMPLE:
                "Raw sample data and sample metadata, sample by sample",
        }
        return mapping.get(self, self.value)

    def __repr__(self) -> str:
        return self.value


class LengthUnit(Enum):
    BYTES = "bytes"
    FRAMES = "frames"

    def __repr__(self) -> str:
        return self.value


# ======================
#  Decoded module
# ======================

@dataclass(frozen=True)
class Command:
    """One pattern cell: note, effect and effect parameter."""
    note: int = 0
    effect: int = 0
    param: int = 0


EMPTY_COMMAND = Command()


@dataclass(frozen=True)
class Pattern:
    """Grid of rows x channels."""
    rows: Tuple[Tuple[Command, ...], ...] = ()

    @property
    def num_rows(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class Subsong:
    """
    Playback sequence of a module.
    `orders` is the full order list, `start_order` the position playback starts from.
    """
    orders: Tuple[int, ...]
    start_order: int = 0


@dataclass(frozen=True)
class DecodedSample:
    name: str
    data: bytes
    length_frames: int
    bits: int = 8
    channels: int = 1
    global_volume: int = 64

    @property
    def length_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class DecodedModule:
    """
    Structured view of a module file as returned by a Decoder.
    Owned by the caller; nothing in it refers back to decoder state.
    """
    format: str
    channels: int
    subsongs: Tuple[Subsong, ...]
    patterns: Dict[int, Pattern]
    samples: Tuple[DecodedSample, ...] = ()
    instrument_names: Tuple[str, ...] = ()
    title: str = ""
    artist: str = ""
    comments: str = ""

    @property
    def subsong_count(self) -> int:
        return len(self.subsongs)

    def num_rows(self, pattern: int) -> int:
        """Number of rows of a pattern, 0 for unknown patterns (e.g. skip/end markers)."""
        p = self.patterns.get(pattern)
        return p.num_rows if p is not None else 0

    def command(self, pattern: int, row: int, channel: int) -> Command:
        p = self.patterns.get(pattern)
        if p is None or row >= len(p.rows):
            return EMPTY_COMMAND
        cells = p.rows[row]
        if channel >= len(cells):
            return EMPTY_COMMAND
        return cells[channel]

    @property
    def sample_names(self) -> Tuple[str, ...]:
        return tuple(s.name for s in self.samples)

    def sample_names_text(self) -> str:
        """Instrument names followed by sample names, one per line."""
        return "".join(f"{name}\n" for name in self.instrument_names + self.sample_names)


# ======================
#  Fingerprinted records
# ======================

@dataclass(frozen=True)
class SampleRecord:
    """Fingerprint of one sample of a module, used in sample-matching mode."""
    module_path: str
    index: int
    name: str
    length_frames: int
    length_bytes: int
    bits: int
    channels: int
    fingerprint: int

    def __repr__(self):
        return f"<SampleRecord {self.module_path}#{self.index} fingerprint={self.fingerprint:016x}>"


@dataclass(frozen=True)
class ModuleRecord:
    """
    Represents a single successfully decoded module file.
    Identity is the pattern fingerprint, never the filename.
    """
    path: str
    pattern_hash: int
    channels: int = 0
    subsongs: int = 0
    sample_names: str = ""
    file_hash: Optional[str] = None
    samples: Tuple[SampleRecord, ...] = ()
    pattern_dump: Tuple[str, ...] = ()
    decoded: bool = True

    @property
    def sample_hashes(self) -> Tuple[int, ...]:
        return tuple(s.fingerprint for s in self.samples)

    def __repr__(self):
        return f"<ModuleRecord path={self.path}, pattern_hash={self.pattern_hash:016x}>"


@dataclass(frozen=True)
class CatalogueEntry:
    """
    A catalogue row: module entry, or sample entry when sample_index is set.
    `names` holds the text searched by sample-name filters.
    """
    path: str
    fingerprint: int
    names: str = ""
    channels: int = 0
    file_hash: Optional[str] = None
    sample_index: Optional[int] = None
    length_frames: Optional[int] = None
    length_bytes: Optional[int] = None

    @property
    def filename(self) -> str:
        return os.path.basename(self.path)

    @property
    def extension(self) -> str:
        _, ext = os.path.splitext(self.filename)
        return ext.lower()

    @property
    def is_sample(self) -> bool:
        return self.sample_index is not None

    def __repr__(self):
        suffix = f"#{self.sample_index}" if self.is_sample else ""
        return f"<CatalogueEntry {self.path}{suffix} fingerprint={self.fingerprint:016x}>"


@dataclass
class MatchGroup:
    """
    A local record paired with the catalogue entries sharing its fingerprint.
    `local` is None for catalogue-only groups (length search, catalogue duplicates).
    """
    fingerprint: int
    entries: List[CatalogueEntry]
    local: Optional[Union[ModuleRecord, SampleRecord]] = None

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    def is_empty(self) -> bool:
        return not self.entries

    def with_entries(self, entries: List[CatalogueEntry]) -> 'MatchGroup':
        return MatchGroup(fingerprint=self.fingerprint, entries=list(entries), local=self.local)

    def __repr__(self):
        return f"<MatchGroup fingerprint={self.fingerprint:016x}, count={len(self.entries)}>"


# ======================
#  Statistics
# ======================

class ScanStats:
    """
    Statistics collected while scanning and fingerprinting files.
    """
    def __init__(self):
        self.files_seen: int = 0
        self.records: int = 0
        self.decode_failures: int = 0
        self.failed_paths: List[str] = []
        self.started_at: float = time.time()
        self.total_time: float = 0.0

    def record_success(self) -> None:
        self.files_seen += 1
        self.records += 1

    def record_failure(self, path: str) -> None:
        self.files_seen += 1
        self.decode_failures += 1
        self.failed_paths.append(path)

    def finish(self) -> None:
        self.total_time = time.time() - self.started_at

    def print_summary(self) -> str:
        lines = [
            "📊 Scan Statistics:",
            f"Total Execution Time: {self.total_time:.3f}s",
            f"Files seen: {self.files_seen}",
            f"Modules fingerprinted: {self.records}",
            f"Decode failures: {self.decode_failures}",
        ]
        return "\n".join(lines)


# ======================
#  Filters and parameters
# ======================

def _normalize_extensions(extensions) -> frozenset:
    normalized = set()
    for ext in extensions or ():
        ext = ext.strip().lower()
        if ext and not ext.startswith('.'):
            ext = f".{ext}"
        if ext:
            normalized.add(ext)
    return frozenset(normalized)


def _compile(pattern: Optional[str], label: str) -> Optional[re.Pattern]:
    if not pattern:
        return None
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise ValueError(f"Invalid {label} regex '{pattern}': {e}") from e


@dataclass(frozen=True)
class FilterCriteria:
    """
    Inclusion/exclusion rules applied to catalogue entries.
    Regexes are compiled on construction so a bad pattern fails before any scan starts.
    """
    include_extensions: frozenset = frozenset()
    exclude_extensions: frozenset = frozenset()
    include_paths: Tuple[str, ...] = ()
    exclude_paths: Tuple[str, ...] = ()
    sample_name_regex: Optional[str] = None
    filename_regex: Optional[str] = None
    sample_length: Optional[int] = None
    length_unit: LengthUnit = LengthUnit.BYTES
    _sample_name_re: Optional[re.Pattern] = field(default=None, init=False, repr=False, compare=False)
    _filename_re: Optional[re.Pattern] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "include_extensions", _normalize_extensions(self.include_extensions))
        object.__setattr__(self, "exclude_extensions", _normalize_extensions(self.exclude_extensions))
        object.__setattr__(self, "include_paths", tuple(p for p in self.include_paths if p))
        object.__setattr__(self, "exclude_paths", tuple(p for p in self.exclude_paths if p))
        object.__setattr__(self, "_sample_name_re", _compile(self.sample_name_regex, "sample name"))
        object.__setattr__(self, "_filename_re", _compile(self.filename_regex, "filename"))

        if self.sample_length is not None and self.sample_length < 0:
            raise ValueError("Sample length cannot be negative")

    @property
    def sample_name_pattern(self) -> Optional[re.Pattern]:
        return self._sample_name_re

    @property
    def filename_pattern(self) -> Optional[re.Pattern]:
        return self._filename_re

    @property
    def has_exclusions(self) -> bool:
        return bool(self.exclude_extensions or self.exclude_paths)

    @property
    def has_inclusions(self) -> bool:
        return bool(
            self.include_extensions
            or self.include_paths
            or self._sample_name_re is not None
            or self._filename_re is not None
        )

    @staticmethod
    def from_human_readable(
            include_ext: str = "",
            exclude_ext: str = "",
            include_paths: str = "",
            exclude_paths: str = "",
            sample_name: Optional[str] = None,
            search_filename: Optional[str] = None,
            sample_length: Optional[int] = None,
            length_unit: LengthUnit = LengthUnit.BYTES,
    ) -> 'FilterCriteria':
        """
        Factory method for comma-separated inputs such as "/incoming,/pub/favourites".
        """
        def split(value: str) -> List[str]:
            return [item.strip() for item in value.split(",") if item.strip()] if value else []

        return FilterCriteria(
            include_extensions=frozenset(split(include_ext)),
            exclude_extensions=frozenset(split(exclude_ext)),
            include_paths=tuple(split(include_paths)),
            exclude_paths=tuple(split(exclude_paths)),
            sample_name_regex=sample_name,
            filename_regex=search_filename,
            sample_length=sample_length,
            length_unit=length_unit,
        )


"""
DTO for match parameters with built-in validation.
"""

@dataclass
class MatchParams:
    """Parameters for a match run."""
    root_dir: str = "."
    recursive: bool = True
    mode: MatchMode = MatchMode.PATTERN
    workers: int = 1
    print_sample_names: bool = False
    dump_patterns: bool = False
    url_prefix: str = ""
    criteria: FilterCriteria = field(default_factory=FilterCriteria)

    def __post_init__(self):
        if not self.root_dir:
            raise ValueError("Root directory cannot be empty")

        if self.workers < 1:
            raise ValueError("Worker count must be at least 1")

        self.url_prefix = self.url_prefix.rstrip("/")
