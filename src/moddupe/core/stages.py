"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/stages.py
Filter pipeline applied to catalogue hits before they are reported.

STAGES
------
ExclusionStage : entry by entry; drops catalogue entries on an excluded path or extension.
                 A group may shrink and still survive.
InclusionStage : group as a whole; when inclusion rules are configured the group is kept
                 only if at least one entry satisfies every rule at once.

FilterPipeline runs exclusion first. A group emptied by exclusion is dropped before the
inclusion stage sees it.

STAGE CONTRACT
--------------
process(group) returns a new MatchGroup, or None when the group is dropped.
Entries and records are never mutated.
"""

import logging
from typing import Iterable, List, Optional, Callable

from moddupe.core.models import CatalogueEntry, FilterCriteria, MatchGroup
from moddupe.core.interfaces import FilterStage

logger = logging.getLogger(__name__)


class ExclusionStage(FilterStage):
    def __init__(self, criteria: FilterCriteria):
        self.criteria = criteria

    def is_excluded(self, entry: CatalogueEntry) -> bool:
        if entry.extension in self.criteria.exclude_extensions:
            return True
        return any(part in entry.path for part in self.criteria.exclude_paths)

    def process(self, group: MatchGroup) -> Optional[MatchGroup]:
        if not self.criteria.has_exclusions:
            return group if not group.is_empty() else None

        kept = [entry for entry in group.entries if not self.is_excluded(entry)]
        if not kept:
            return None
        return group.with_entries(kept)


class InclusionStage(FilterStage):
    def __init__(self, criteria: FilterCriteria):
        self.criteria = criteria

    def satisfies_all(self, entry: CatalogueEntry) -> bool:
        """True if the entry meets every configured inclusion rule."""
        c = self.criteria
        if c.include_extensions and entry.extension not in c.include_extensions:
            return False
        if c.include_paths and not any(part in entry.path for part in c.include_paths):
            return False
        if c.sample_name_pattern is not None and not c.sample_name_pattern.search(entry.names):
            return False
        if c.filename_pattern is not None and not c.filename_pattern.search(entry.filename):
            return False
        return True

    def process(self, group: MatchGroup) -> Optional[MatchGroup]:
        if not self.criteria.has_inclusions:
            return group
        if any(self.satisfies_all(entry) for entry in group.entries):
            return group
        return None


class FilterPipeline:
    """
    Exclusion stage followed by inclusion stage.
    """

    def __init__(self, criteria: Optional[FilterCriteria] = None):
        self.criteria = criteria or FilterCriteria()
        self.exclusion = ExclusionStage(self.criteria)
        self.inclusion = InclusionStage(self.criteria)

    def apply(self, group: MatchGroup) -> Optional[MatchGroup]:
        group = self.exclusion.process(group)
        if group is None:
            return None
        return self.inclusion.process(group)

    def apply_all(
            self,
            groups: Iterable[MatchGroup],
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> List[MatchGroup]:
        result = []
        dropped = 0
        for group in groups:
            if stopped_flag and stopped_flag():
                return result
            filtered = self.apply(group)
            if filtered is None:
                dropped += 1
            else:
                result.append(filtered)

        if dropped:
            logger.debug(f"Filters dropped {dropped} groups")
        return result
