"""Incremental pagination shared by every ``fetch_next_*`` operation.

Vendor APIs are queried with a fixed page size, but after dropping records
that sit at or below the watermark a vendor page may contain fewer *new*
records than requested.  ``fetch_batch`` keeps pulling vendor pages until the
caller's quota is filled or the vendor returns a short page, then truncates
to the quota so the watermark is always taken from the last record actually
returned.
"""

import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from .errors import CurrencyNotSupported, MissingPageSize
from .observability import track_skipped_record

logger = logging.getLogger("payconnect.pagination")

T = TypeVar("T")
V = TypeVar("V")


def should_fetch_more(
    accumulated: Sequence, last_page: Sequence, page_size: int
) -> tuple[bool, bool]:
    """Decide whether to pull another vendor page.

    Returns ``(need_more, has_more)``:

    * a vendor page shorter than ``page_size`` means the source is exhausted:
      ``(False, False)``;
    * enough accumulated results to fill the quota: ``(False, True)``;
    * otherwise the page was full but mostly already seen: ``(True, True)``.
    """
    if len(last_page) < page_size:
        return False, False
    if len(accumulated) >= page_size:
        return False, True
    return True, True


@dataclass
class Batch(Generic[T, V]):
    """Outcome of one ``fetch_next_*`` call before state encoding."""

    items: list[T]
    # Last vendor record consumed (translated, ignored or dropped).  The
    # watermark is derived from it so dropped records are not refetched.
    last_record: V | None
    has_more: bool
    skipped: int = 0
    pages_fetched: int = 0


def fetch_batch(
    pages: Iterator[Sequence[V]],
    translate: Callable[[V], T | None],
    page_size: int,
    *,
    is_new: Callable[[V], bool] | None = None,
    provider: str = "",
    entity: str = "",
) -> Batch[T, V]:
    """Run the fetch-translate-accumulate loop over lazily fetched pages.

    ``pages`` yields raw vendor pages; it is only advanced when another page
    is needed, so the connector keeps its own cursor bookkeeping inside the
    generator.  Vendor and translation errors propagate unchanged.

    ``is_new`` filters records at or below the watermark.  ``translate``
    returns the canonical item or ``None`` for a record that produces no
    entity; raising ``CurrencyNotSupported`` drops the record.
    """
    if page_size <= 0:
        raise MissingPageSize()

    # (record, item) in vendor order; item is None for ignored/dropped records
    accepted: list[tuple[V, T | None]] = []
    items: list[T] = []
    skipped = 0
    pages_fetched = 0
    has_more = False

    for page in pages:
        pages_fetched += 1
        for record in page:
            if is_new is not None and not is_new(record):
                continue
            try:
                item = translate(record)
            except CurrencyNotSupported as exc:
                skipped += 1
                logger.warning(
                    "Skipping %s record provider=%s reason=%s", entity, provider, exc
                )
                track_skipped_record(provider, entity, "currency_not_supported")
                accepted.append((record, None))
                continue
            accepted.append((record, item))
            if item is not None:
                items.append(item)

        need_more, has_more = should_fetch_more(items, page, page_size)
        if not need_more:
            break
    else:
        # The vendor ran out of pages while more were wanted.
        has_more = False

    if len(items) > page_size or (len(items) == page_size and has_more):
        # Records after the last returned item are left for the next call.
        accepted = _truncate(accepted, page_size)
        items = [item for _, item in accepted if item is not None]
        has_more = True

    last_record = accepted[-1][0] if accepted else None

    return Batch(
        items=items,
        last_record=last_record,
        has_more=has_more,
        skipped=skipped,
        pages_fetched=pages_fetched,
    )


def _truncate(
    accepted: list[tuple[V, T | None]], page_size: int
) -> list[tuple[V, T | None]]:
    """Cut right after the ``page_size``-th real item."""
    count = 0
    for idx, (_, item) in enumerate(accepted):
        if item is not None:
            count += 1
            if count == page_size:
                return accepted[: idx + 1]
    return accepted


def numbered_pages(
    fetch_page: Callable[[int], Sequence[V]], start: int = 0
) -> Iterator[Sequence[V]]:
    """Yield ``fetch_page(start)``, ``fetch_page(start + 1)``, ...

    Never exhausts by itself; ``fetch_batch`` stops pulling at the first
    short page, which is how page-number APIs signal the end.
    """
    page = start
    while True:
        yield fetch_page(page)
        page += 1
