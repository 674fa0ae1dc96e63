"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/reporter.py
Turns local records and catalogue hits into filtered match groups and report text.
"""

import logging
from typing import Iterable, Iterator, List, Optional, Callable

from moddupe.core.models import (
    ModuleRecord, SampleRecord, MatchGroup, CatalogueEntry, FilterCriteria, LengthUnit)
from moddupe.core.catalogue import CatalogueStore
from moddupe.core.grouper import EntryGrouperImpl
from moddupe.core.stages import FilterPipeline
from moddupe.core.hasher import SampleHasherImpl

logger = logging.getLogger(__name__)


class DuplicateReporter:
    """
    Looks up every local record in the catalogue and filters the hits.
    Records without hits, or whose hits are all filtered out, produce nothing.
    """

    def __init__(
            self,
            store: CatalogueStore,
            criteria: Optional[FilterCriteria] = None,
            url_prefix: str = "",
            print_sample_names: bool = False,
            dump_patterns: bool = False
    ):
        self.store = store
        self.criteria = criteria or FilterCriteria()
        self.pipeline = FilterPipeline(self.criteria)
        self.url_prefix = url_prefix
        self.print_sample_names = print_sample_names
        self.dump_patterns = dump_patterns

    # ---------- matching ----------

    def match(
            self,
            records: Iterable[ModuleRecord],
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Iterator[MatchGroup]:
        """Pattern mode: one group per local module with surviving hits."""
        for record in records:
            if stopped_flag and stopped_flag():
                return
            entries = self.store.lookup(record.pattern_hash)
            group = self._filtered(record.pattern_hash, entries, record)
            if group is not None:
                yield group

    def match_samples(
            self,
            records: Iterable[ModuleRecord],
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Iterator[MatchGroup]:
        """Sample mode: one group per local sample with surviving hits."""
        for record in records:
            for sample in record.samples:
                if stopped_flag and stopped_flag():
                    return
                if not self.sample_length_passes(sample):
                    continue
                entries = self.store.lookup_samples(sample.fingerprint)
                group = self._filtered(sample.fingerprint, entries, sample)
                if group is not None:
                    yield group

    def sample_length_passes(self, sample: SampleRecord) -> bool:
        """Local samples are only matched when they satisfy the configured length, if any."""
        length = self.criteria.sample_length
        if length is None:
            return True
        if self.criteria.length_unit == LengthUnit.FRAMES:
            return SampleHasherImpl.matches_frame_length(sample, length)
        return SampleHasherImpl.matches_byte_length(sample, length)

    def search_lengths(self) -> List[MatchGroup]:
        """
        Catalogue samples with the configured length, grouped by sample fingerprint.
        Only samples that satisfy every inclusion rule themselves are listed.
        No local files are involved.
        """
        if self.criteria.sample_length is None:
            raise ValueError("No sample length configured")

        entries = self.store.find_samples_by_length(self.criteria.sample_length, self.criteria.length_unit)
        groups = EntryGrouperImpl().group_by_fingerprint(entries)

        result = []
        for group in self.pipeline.apply_all(groups):
            kept = [e for e in group.entries if self.pipeline.inclusion.satisfies_all(e)]
            if kept:
                result.append(group.with_entries(kept))
        return result

    def catalogue_duplicates(self) -> List[MatchGroup]:
        """Intra-catalogue duplicate groups that still hold two or more entries after filtering."""
        filtered = self.pipeline.apply_all(self.store.duplicate_groups())
        return [g for g in filtered if g.entry_count >= 2]

    def _filtered(self, fingerprint: int, entries: List[CatalogueEntry], local) -> Optional[MatchGroup]:
        if not entries:
            return None
        group = MatchGroup(fingerprint=fingerprint, entries=entries, local=local)
        result = self.pipeline.apply(group)
        if result is None:
            logger.debug(f"All {len(entries)} matches for {self._local_label(local)} filtered out")
        return result

    # ---------- rendering ----------

    def location(self, entry: CatalogueEntry) -> str:
        if not self.url_prefix:
            return entry.path
        return self.url_prefix + entry.path.replace(" ", "%20")

    @staticmethod
    def _local_label(local) -> str:
        if isinstance(local, SampleRecord):
            return f"{local.module_path} (sample {local.index}: {local.name})"
        return local.path

    def render(self, group: MatchGroup) -> str:
        """Report text for one surviving group, ending with a blank line."""
        local = group.local
        lines = [f"Matching {self._local_label(local)}"]

        if self.dump_patterns and isinstance(local, ModuleRecord):
            lines.extend(f"    {line}" for line in local.pattern_dump)

        for entry in group.entries:
            lines.append(self._render_entry(entry, local))

        lines.append("")
        return "\n".join(lines)

    def render_catalogue_group(self, group: MatchGroup, index: int, title: str = "Dupe") -> str:
        lines = [f"{title} {index}", "-" * 22]
        for entry in group.entries:
            lines.append(self._render_entry(entry, None))
        lines.append("")
        return "\n".join(lines)

    def render_entry_listing(self, entry: CatalogueEntry) -> str:
        line = f"{entry.fingerprint:016x} {self.location(entry)}"
        if self.print_sample_names and entry.names:
            line += "\n" + self._indent_names(entry.names)
        return line

    def _render_entry(self, entry: CatalogueEntry, local) -> str:
        if entry.is_sample:
            line = (f"Found match {self.location(entry)} (sample {entry.sample_index}: "
                    f"{entry.names}, {entry.length_bytes} bytes)")
        else:
            tags = ["(pattern_hash)"]
            if isinstance(local, ModuleRecord) and local.file_hash and local.file_hash == entry.file_hash:
                tags.append("(exact copy)")
            line = f"Found match {self.location(entry)} {' '.join(tags)}"

        if self.print_sample_names and not entry.is_sample and entry.names:
            line += "\n" + self._indent_names(entry.names)
        return line

    @staticmethod
    def _indent_names(names: str) -> str:
        return "\n".join(f"    {name}" for name in names.rstrip("\n").split("\n"))

