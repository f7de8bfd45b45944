"""Tests for the shared fetch-translate-accumulate loop.

Covers:
- should_fetch_more decisions
- Quota truncation and the watermark record
- Watermark filtering across vendor pages
- Lazy page fetching
- Records dropped for unsupported currencies
"""

from payconnect.errors import CurrencyNotSupported, MissingPageSize
from payconnect.observability import Observability
from payconnect.pagination import fetch_batch, numbered_pages, should_fetch_more


# ---------------------------------------------------------------------------
# should_fetch_more
# ---------------------------------------------------------------------------


def test_short_page_means_exhausted():
    assert should_fetch_more([1], [1], 2) == (False, False)


def test_quota_filled_stops_with_more():
    assert should_fetch_more([1, 2], [1, 2], 2) == (False, True)


def test_full_page_of_seen_records_fetches_again():
    assert should_fetch_more([], [1, 2], 2) == (True, True)


# ---------------------------------------------------------------------------
# fetch_batch
# ---------------------------------------------------------------------------


def test_single_short_page():
    batch = fetch_batch(iter([[1, 2]]), lambda r: r * 10, 3)
    assert batch.items == [10, 20]
    assert batch.last_record == 2
    assert batch.has_more is False
    assert batch.pages_fetched == 1


def test_oversized_page_is_truncated_to_quota():
    batch = fetch_batch(iter([[1, 2, 3], [4, 5, 6]]), lambda r: r, 2)
    assert batch.items == [1, 2]
    assert batch.last_record == 2
    assert batch.has_more is True
    assert batch.pages_fetched == 1


def test_seen_records_are_filtered_and_next_page_pulled():
    batch = fetch_batch(iter([[1, 2], [3, 4]]), lambda r: r, 2, is_new=lambda r: r > 2)
    assert batch.items == [3, 4]
    assert batch.last_record == 4
    assert batch.has_more is True
    assert batch.pages_fetched == 2


def test_pages_exhausted_while_more_wanted():
    batch = fetch_batch(iter([[1, 2]]), lambda r: r, 2, is_new=lambda r: False)
    assert batch.items == []
    assert batch.last_record is None
    assert batch.has_more is False


def test_pages_are_fetched_lazily():
    data = [[1, 2], [3, 4], [5]]
    calls = []

    def fetch_page(page):
        calls.append(page)
        return data[page] if page < len(data) else []

    batch = fetch_batch(numbered_pages(fetch_page), lambda r: r, 2)
    assert batch.items == [1, 2]
    assert calls == [0]


def test_numbered_pages_start_offset():
    pages = numbered_pages(lambda page: [page], start=3)
    assert next(pages) == [3]
    assert next(pages) == [4]


def test_ignored_record_still_moves_watermark():
    batch = fetch_batch(iter([[1, 2]]), lambda r: r if r == 1 else None, 5)
    assert batch.items == [1]
    assert batch.last_record == 2


def test_truncation_keeps_dropped_records_before_cut():
    batch = fetch_batch(
        iter([[1, 2, 3, 4]]), lambda r: None if r == 2 else r, 2
    )
    assert batch.items == [1, 3]
    assert batch.last_record == 3
    assert batch.has_more is True


def test_unsupported_currency_is_skipped_and_counted():
    obs = Observability().activate()

    def translate(record):
        if record == 2:
            raise CurrencyNotSupported("currency not supported: 'XXX'")
        return record

    batch = fetch_batch(
        iter([[1, 2, 3]]), translate, 5, provider="test", entity="payments"
    )
    assert batch.items == [1, 3]
    assert batch.skipped == 1
    assert batch.last_record == 3
    assert (
        obs.registry.get_sample_value(
            "payconnect_skipped_records_total",
            {"provider": "test", "entity": "payments", "reason": "currency_not_supported"},
        )
        == 1.0
    )


def test_unsupported_currency_as_last_record_moves_watermark():
    def translate(record):
        if record == 2:
            raise CurrencyNotSupported()
        return record

    batch = fetch_batch(iter([[1, 2]]), translate, 5)
    assert batch.items == [1]
    assert batch.last_record == 2


def test_zero_page_size_rejected():
    try:
        fetch_batch(iter([[1]]), lambda r: r, 0)
        assert False, "Should have raised"
    except MissingPageSize as exc:
        assert "page size" in str(exc)


def test_translation_errors_propagate():
    def translate(record):
        raise KeyError("id")

    try:
        fetch_batch(iter([[1]]), translate, 5)
        assert False, "Should have raised"
    except KeyError:
        pass
