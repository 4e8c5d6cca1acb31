from __future__ import annotations

import os
from typing import Any, Dict, Iterable, Iterator, List, Sequence, Union

from mediapeek.core.errors import StateFailure
from mediapeek.core.logging import get_logger

from .media import MediaEntry


class Playlist:
    """Ordered, shared playlist state every component publishes into.

    Entries are immutable; every write replaces the matching record with a
    merged copy so concurrent updates to sibling fields are never clobbered.
    """

    def __init__(self, entries: Iterable[MediaEntry] = ()):
        self._entries: List[MediaEntry] = list(entries)
        self.logger = get_logger(component="playlist")

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[MediaEntry]:
        return iter(list(self._entries))

    @property
    def entries(self) -> List[MediaEntry]:
        return list(self._entries)

    def get(self, index: int) -> MediaEntry:
        if index < 0 or index >= len(self._entries):
            raise StateFailure(index)
        return self._entries[index]

    def add(self, paths: Sequence[Union[str, os.PathLike]]) -> List[int]:
        """Append entries for ``paths``; the same path may appear more than once."""
        added: List[int] = []
        for path in paths:
            self._entries.append(MediaEntry.from_path(path))
            added.append(len(self._entries) - 1)
        self.logger.debug("playlist_entries_added", count=len(added))
        return added

    def remove(self, index: int) -> MediaEntry:
        entry = self.get(index)
        del self._entries[index]
        return entry

    def indices_of(self, path: str) -> List[int]:
        return [idx for idx, entry in enumerate(self._entries) if entry.path == path]

    def merge(self, index: int, path: str, changes: Dict[str, Any]) -> int:
        """Merge ``changes`` into every entry holding ``path``.

        ``index`` is where the caller last saw the entry. Entries may have been
        removed or reordered since, so the path is authoritative; a missing
        path is ignored. Returns the number of entries updated.
        """
        targets = self.indices_of(path)
        if not targets:
            self.logger.debug("playlist_merge_skipped", index=index, path=path, reason="entry_removed")
            return 0
        if index not in targets:
            self.logger.debug("playlist_merge_stale_index", index=index, path=path, resolved=targets)
        for idx in targets:
            self._entries[idx] = self._entries[idx].merged(changes)
        return len(targets)

    def set_mark_in(self, index: int, at_s: float) -> MediaEntry:
        entry = self.get(index)
        if entry.trim_end is not None and at_s >= entry.trim_end:
            changes: Dict[str, Any] = {"trim_start": at_s, "trim_end": None}
        else:
            changes = {"trim_start": at_s}
        return self._replace(index, entry.merged(changes))

    def set_mark_out(self, index: int, at_s: float) -> MediaEntry:
        entry = self.get(index)
        if entry.trim_start is not None and at_s <= entry.trim_start:
            changes: Dict[str, Any] = {"trim_end": at_s, "trim_start": None}
        else:
            changes = {"trim_end": at_s}
        return self._replace(index, entry.merged(changes))

    def clear_marks(self, index: int) -> MediaEntry:
        entry = self.get(index)
        return self._replace(index, entry.merged({"trim_start": None, "trim_end": None}))

    def _replace(self, index: int, entry: MediaEntry) -> MediaEntry:
        self._entries[index] = entry
        return entry


__all__ = ["Playlist"]
