"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/interfaces.py

Defines core interfaces (Protocols) of the fingerprinting engine.

Key Components:
---------------
- Decoder: turns raw file bytes into an owned DecodedModule.
- PatternHasher / SampleHasher / ContentHasher: fingerprint functions.
- ModuleScanner: walks a directory and yields ModuleRecords.
- FilterStage: one stage of the filter pipeline applied to catalogue hits.
- EntryGrouper: groups catalogue entries by fingerprint.
"""

from typing import Protocol, Iterator, List, Optional, Callable, Tuple

from moddupe.core.models import (
    DecodedModule, DecodedSample, ModuleRecord, SampleRecord, MatchGroup, CatalogueEntry)


class DecodeError(ValueError):
    """Raised by a Decoder when the bytes are not a module it can parse."""


# ===== Interfaces =====

class Decoder(Protocol):
    """
    Interface for module decoders.
    A call owns nothing after it returns; decoders keep no per-file state.
    """
    def decode(self, data: bytes) -> DecodedModule:
        """Raises DecodeError when the data cannot be parsed."""
        ...


class PatternHasher(Protocol):
    def compute(self, module: DecodedModule, dump: Optional[List[str]] = None) -> int: ...


class SampleHasher(Protocol):
    def compute(self, sample: DecodedSample) -> int: ...

    def records(self, path: str, module: DecodedModule) -> Tuple[SampleRecord, ...]: ...


class ContentHasher(Protocol):
    @staticmethod
    def compute(data: bytes) -> str: ...


class ModuleScanner(Protocol):
    """
    Interface for scanning a directory and fingerprinting module files.
    """
    def scan(
        self,
        root_dir: str,
        recursive: bool = True,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> Iterator[ModuleRecord]:
        """
        Args:
            root_dir: Directory to scan.
            recursive: Descend into subdirectories.
            stopped_flag: Function that returns True if operation should be canceled.
            progress_callback: Optional callback for reporting progress (stage, current, total).

        Returns:
            Iterator over records of files that decoded successfully.
        """
        ...


# =============================
# Stage Interfaces
# =============================

class FilterStage(Protocol):
    """
    Interface for a filter stage.
    Returns a new group, or None when the group is dropped. Never mutates its input.
    """
    def process(self, group: MatchGroup) -> Optional[MatchGroup]: ...


class EntryGrouper(Protocol):
    def group_by_fingerprint(self, entries: List[CatalogueEntry]) -> List[MatchGroup]:
        """Group catalogue entries by their fingerprint."""
        ...
