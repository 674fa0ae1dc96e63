"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Walks a directory and fingerprints every module file found.
Features:
- Uses pathlib.Path for robust, cross-platform path handling
- Recursive or single-level traversal
- Lazy: records are yielded one by one, files that fail to decode are counted and skipped
- Optional process pool for CPU-bound fingerprinting
"""

import os
import logging
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Iterator, List, Optional, Callable, Tuple

from moddupe.core.models import ModuleRecord, ScanStats
from moddupe.core.interfaces import ModuleScanner, Decoder, DecodeError
from moddupe.core.decoder import ProTrackerDecoder
from moddupe.core.hasher import PatternHasherImpl, SampleHasherImpl, ContentHasherImpl

logger = logging.getLogger(__name__)

SKIPPED_SUFFIXES = (".listing",)


class ModuleFingerprinter:
    """
    Builds a ModuleRecord from one file. Stateless apart from its collaborators,
    so instances can be shipped to worker processes.
    """

    def __init__(
            self,
            decoder: Optional[Decoder] = None,
            with_samples: bool = False,
            dump_patterns: bool = False
    ):
        self.decoder = decoder or ProTrackerDecoder()
        self.pattern_hasher = PatternHasherImpl()
        self.sample_hasher = SampleHasherImpl()
        self.content_hasher = ContentHasherImpl()
        self.with_samples = with_samples
        self.dump_patterns = dump_patterns

    def fingerprint_bytes(self, path: str, data: bytes) -> ModuleRecord:
        """Raises DecodeError when the decoder rejects the data."""
        module = self.decoder.decode(data)

        dump: Optional[List[str]] = [] if self.dump_patterns else None
        pattern_hash = self.pattern_hasher.compute(module, dump=dump)
        samples = self.sample_hasher.records(path, module) if self.with_samples else ()

        return ModuleRecord(
            path=path,
            pattern_hash=pattern_hash,
            channels=module.channels,
            subsongs=module.subsong_count,
            sample_names=module.sample_names_text(),
            file_hash=self.content_hasher.compute(data),
            samples=samples,
            pattern_dump=tuple(dump) if dump is not None else (),
        )

    def fingerprint_file(self, path: str) -> Tuple[str, Optional[ModuleRecord], Optional[str]]:
        """
        Returns (path, record, error). Never raises for unreadable or undecodable files.
        """
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            return path, None, f"read error: {e}"

        try:
            return path, self.fingerprint_bytes(path, data), None
        except DecodeError as e:
            return path, None, f"decode error: {e}"


class ModuleScannerImpl(ModuleScanner):
    """
    Scans a directory and produces one ModuleRecord per decodable file.
    Traversal order is not defined; consumers must not depend on it.

    Attributes:
        fingerprinter: Decoder plus hashers applied to each file
        workers: Number of worker processes (1 = fingerprint in this process)
        stats: Counters for the last scan
    """

    def __init__(self, fingerprinter: Optional[ModuleFingerprinter] = None, workers: int = 1):
        self.fingerprinter = fingerprinter or ModuleFingerprinter()
        self.workers = max(1, workers)
        self.stats = ScanStats()

    def scan(
            self,
            root_dir: str,
            recursive: bool = True,
            stopped_flag: Optional[Callable[[], bool]] = None,
            progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> Iterator[ModuleRecord]:
        """
        Lazily yields records. Raises RuntimeError if root_dir is not a directory.
        """
        root_path = Path(root_dir)
        if not root_path.exists():
            error_msg = f"Directory does not exist: {root_dir}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        if not root_path.is_dir():
            error_msg = f"Not a directory: {root_dir}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        self.stats = ScanStats()
        return self._scan(root_path, recursive, stopped_flag, progress_callback)

    def _scan(self, root_path, recursive, stopped_flag, progress_callback) -> Iterator[ModuleRecord]:
        logger.debug(f"Scanning {root_path} (recursive={recursive}, workers={self.workers})")
        paths = self.iter_files(root_path, recursive)

        if self.workers == 1:
            results = (self.fingerprinter.fingerprint_file(p) for p in paths)
            yield from self._collect(results, stopped_flag, progress_callback)
        else:
            with ProcessPoolExecutor(max_workers=self.workers) as executor:
                results = executor.map(self.fingerprinter.fingerprint_file, paths, chunksize=16)
                yield from self._collect(results, stopped_flag, progress_callback)

        self.stats.finish()
        logger.info(
            f"Scan completed: {self.stats.records} modules, "
            f"{self.stats.decode_failures} failures in {self.stats.total_time:.2f}s")

    def _collect(self, results, stopped_flag, progress_callback) -> Iterator[ModuleRecord]:
        for path, record, error in results:
            if stopped_flag and stopped_flag():
                logger.debug("Scan interrupted by user")
                return

            if record is None:
                self.stats.record_failure(path)
                logger.debug(f"Skipping {path}: {error}")
            else:
                self.stats.record_success()
                yield record

            if progress_callback:
                progress_callback("Fingerprinting", self.stats.files_seen, None)

    @staticmethod
    def iter_files(root_path: Path, recursive: bool = True) -> Iterator[str]:
        """Regular, non-symlink files under root_path."""
        if recursive:
            for root, dirs, files in os.walk(str(root_path)):
                dirs[:] = [d for d in dirs if not (Path(root) / d).is_symlink()]
                for filename in files:
                    path = Path(root) / filename
                    if ModuleScannerImpl._accept(path):
                        yield str(path)
        else:
            for path in root_path.iterdir():
                if ModuleScannerImpl._accept(path):
                    yield str(path)

    @staticmethod
    def _accept(path: Path) -> bool:
        try:
            if path.is_symlink():
                logger.debug(f"Skipping symbolic link: {path}")
                return False
            if not path.is_file():
                return False
        except (OSError, PermissionError) as e:
            logger.debug(f"Could not stat {path}: {e}")
            return False

        if path.name.endswith(SKIPPED_SUFFIXES):
            logger.debug(f"Skipping listing file: {path}")
            return False
        return True
