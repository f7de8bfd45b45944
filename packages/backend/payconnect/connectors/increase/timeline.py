"""Cursor pagination that resumes by position inside a vendor page.

Increase list endpoints hand out opaque cursors and make no ordering promise
within a page that the watermark could rely on.  The state keeps the cursor
of the page that held the last returned record, that record's id and how
many records of the page were consumed.  The next call re-reads the page and
skips everything up to and including the last returned record, located by
id, or by the consumed count when the record is no longer on the page.  When
the last returned record closed its page, the state moves straight on to
the following cursor.
"""

from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

from pydantic import Field

from ...pagination import Batch, fetch_batch
from ...state import PluginState

if TYPE_CHECKING:
    from .plugin import Plugin


class TimelineState(PluginState):
    cursor: str | None = None
    last_id: str = Field(default="", alias="lastId")
    # records of the page at ``cursor`` already returned
    consumed: int = Field(default=0, ge=0)


def _consumed_ids(records: list[dict[str, Any]], state: TimelineState) -> set[str]:
    ids = [record["id"] for record in records]
    if state.last_id in ids:
        return set(ids[: ids.index(state.last_id) + 1])
    return set(ids[: state.consumed])


def fetch_timeline(
    plugin: "Plugin",
    resource: str,
    state: TimelineState,
    page_size: int,
    translate: Callable[[dict[str, Any]], Any],
    entity: str,
) -> Batch:
    """Fetch the next batch of ``resource`` and advance ``state`` in place."""
    client = plugin._require_client()
    # record id -> (page cursor, index in page, page length, next cursor)
    positions: dict[str, tuple[str | None, int, int, str | None]] = {}
    seen: set[str] = set()

    def pages() -> Iterator[list[dict[str, Any]]]:
        cursor = state.cursor
        first = True
        while True:
            records, next_cursor = client.list(resource, page_size, cursor)
            if first:
                seen.update(_consumed_ids(records, state))
                first = False
            for idx, record in enumerate(records):
                positions[record["id"]] = (cursor, idx, len(records), next_cursor)
            yield records
            if not next_cursor:
                return
            cursor = next_cursor

    batch = fetch_batch(
        pages(),
        translate,
        page_size,
        is_new=lambda record: record["id"] not in seen,
        provider=plugin.provider_name,
        entity=entity,
    )
    if batch.last_record is not None:
        last_id = batch.last_record["id"]
        cursor, idx, length, next_cursor = positions[last_id]
        state.last_id = last_id
        if idx + 1 == length and next_cursor:
            state.cursor = next_cursor
            state.consumed = 0
        else:
            state.cursor = cursor
            state.consumed = idx + 1
            if idx + 1 == length:
                # Last record of the last page: nothing is left to fetch.
                batch.has_more = False
    return batch
