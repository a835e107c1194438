"""Merging server records with local drafts into one table."""

import logging
from typing import Any, Callable, List, Sequence

from crudgrid.client.cache import ChangeReason, CollectionCache, Snapshot
from crudgrid.client.drafts import DraftStore
from crudgrid.client.table import TableController

logger = logging.getLogger(__name__)


def merge_collections(
    remote: Sequence[Any],
    local: Sequence[Any],
    key_of: Callable[[Any], Any] = lambda record: record.id,
) -> List[Any]:
    """Remote records first, then local records whose id the server does not have."""
    remote_ids = {key_of(record) for record in remote}
    return [*remote, *(record for record in local if key_of(record) not in remote_ids)]


class MergedCollection:
    """Keeps a table fed with the merge of a cached collection and its drafts.

    Drafts are dropped once a fetch shows the server holds their id.
    """

    def __init__(self, cache: CollectionCache, key: str, drafts: DraftStore, table: TableController):
        self.cache = cache
        self.key = key
        self.drafts = drafts
        self.table = table
        self._unsubscribe = [
            cache.subscribe(key, self._on_cache_change),
            drafts.subscribe(self._on_drafts_change),
        ]
        self.refresh()

    def records(self) -> List[Any]:
        return merge_collections(self.cache.records(self.key), self.drafts.list())

    def refresh(self) -> None:
        self.table.set_data(self.records())

    def _on_cache_change(self, key: str, snapshot: Snapshot, reason: ChangeReason) -> None:
        if reason == ChangeReason.INVALIDATED:
            return
        if reason == ChangeReason.FETCHED:
            # discard_confirmed notifies _on_drafts_change, which refreshes.
            if self.drafts.discard_confirmed(record.id for record in snapshot.records):
                return
        self.refresh()

    def _on_drafts_change(self, records: Sequence[Any]) -> None:
        self.refresh()

    def close(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
