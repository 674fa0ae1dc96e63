"""
Command orchestrators for building a catalogue and matching against it.
This is the single source of business logic for the CLI; no I/O formatting here.
"""
from typing import Iterator, List, Optional, Callable, Tuple

from moddupe.core.models import MatchGroup, MatchParams, MatchMode, ScanStats
from moddupe.core.interfaces import Decoder
from moddupe.core.scanner import ModuleScannerImpl, ModuleFingerprinter
from moddupe.core.catalogue import CatalogueStore
from moddupe.core.reporter import DuplicateReporter


class BuildCommand:
    """
    Scans a reference directory and upserts every decodable module into a catalogue.

    Usage:
        with CatalogueStore("database.db") as store:
            written, stats = BuildCommand().execute("/modland", store)
    """

    def __init__(self, decoder: Optional[Decoder] = None, workers: int = 1):
        self._scanner = ModuleScannerImpl(
            ModuleFingerprinter(decoder=decoder, with_samples=True),
            workers=workers,
        )

    def execute(
            self,
            root_dir: str,
            store: CatalogueStore,
            recursive: bool = True,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Tuple[int, ScanStats]:
        """
        Returns (rows written, scan statistics).

        Raises:
            RuntimeError: If root_dir is not a directory
        """
        records = self._scanner.scan(
            root_dir,
            recursive=recursive,
            stopped_flag=stopped_flag,
            progress_callback=progress_callback,
        )
        written = store.build(records, root_dir)
        return written, self._scanner.stats


class MatchCommand:
    """
    Fingerprints a local directory and reports catalogue duplicates.

    Usage:
        params = MatchParams(root_dir="incoming", criteria=FilterCriteria(...))
        command = MatchCommand()
        groups, stats = command.execute(params, store)
    """

    def __init__(self, decoder: Optional[Decoder] = None):
        self._decoder = decoder
        self.stats = ScanStats()

    def reporter(self, params: MatchParams, store: CatalogueStore) -> DuplicateReporter:
        return DuplicateReporter(
            store,
            criteria=params.criteria,
            url_prefix=params.url_prefix,
            print_sample_names=params.print_sample_names,
            dump_patterns=params.dump_patterns,
        )

    def iter_matches(
            self,
            params: MatchParams,
            store: CatalogueStore,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Iterator[MatchGroup]:
        """
        Lazily yields surviving match groups as local files are fingerprinted.
        Raises RuntimeError straight away if the root directory is missing.
        """
        fingerprinter = ModuleFingerprinter(
            decoder=self._decoder,
            with_samples=params.mode == MatchMode.SAMPLE,
            dump_patterns=params.dump_patterns,
        )
        scanner = ModuleScannerImpl(fingerprinter, workers=params.workers)
        records = scanner.scan(
            params.root_dir,
            recursive=params.recursive,
            stopped_flag=stopped_flag,
            progress_callback=progress_callback,
        )

        self.stats = scanner.stats

        reporter = self.reporter(params, store)
        if params.mode == MatchMode.SAMPLE:
            return reporter.match_samples(records, stopped_flag=stopped_flag)
        return reporter.match(records, stopped_flag=stopped_flag)

    def execute(
            self,
            params: MatchParams,
            store: CatalogueStore,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Tuple[List[MatchGroup], ScanStats]:
        """
        Returns the surviving match groups (unordered) and scan statistics.
        """
        groups = list(self.iter_matches(params, store, progress_callback, stopped_flag))
        return groups, self.stats
