"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Groups catalogue entries that share a fingerprint.
"""

from typing import List, Dict, Any, Callable
from collections import defaultdict
from moddupe.core.interfaces import EntryGrouper
from moddupe.core.models import CatalogueEntry, MatchGroup


class EntryGrouperImpl(EntryGrouper):
    """
    Builds MatchGroups from flat lists of catalogue entries.
    Entries keep the order they were given in.
    """

    def __init__(self, min_group_size: int = 1):
        self.min_group_size = min_group_size

    def group_by_fingerprint(self, entries: List[CatalogueEntry]) -> List[MatchGroup]:
        groups = self._group_by(entries, lambda e: e.fingerprint)
        return [MatchGroup(fingerprint=key, entries=group) for key, group in groups.items()]

    def _group_by(
            self,
            entries: List[CatalogueEntry],
            key_func: Callable[[CatalogueEntry], Any]
    ) -> Dict[Any, List[CatalogueEntry]]:
        """
        Helper method to group entries by any computed key.
        Groups smaller than min_group_size are left out.
        """
        groups = defaultdict(list)
        for entry in entries:
            groups[key_func(entry)].append(entry)

        return {
            key: group for key, group in groups.items()
            if len(group) >= self.min_group_size
        }
