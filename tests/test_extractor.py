"""Tests for review card extraction."""

from types import SimpleNamespace

import pytest

from fakes import FakePage, listing_page, review_card
from reviewscraper.ingest.base import Record
from reviewscraper.ingest.extractor import (
    RecordExtractor,
    extract_records,
    page_fingerprint,
    parse_score,
    strip_prefixes,
)


class TestParseScore:
    """Score parsing with comma decimals."""

    def test_comma_decimal(self):
        assert parse_score("8,5") == 8.5

    def test_label_prefix(self):
        assert parse_score("Puntuación: 7,0", ["Puntuación:"]) == 7.0

    def test_whole_number(self):
        assert parse_score(" 10 ") == 10.0

    def test_unparseable_is_unscored(self):
        assert parse_score("Sin puntuación") is None
        assert parse_score("") is None
        assert parse_score(None) is None


def test_strip_prefixes():
    """Boilerplate labels are removed case-insensitively after trimming."""
    prefixes = ["Fecha del comentario:", "Reviewed on:"]
    assert strip_prefixes("  Fecha del comentario: 3 de mayo de 2024 ", prefixes) == "3 de mayo de 2024"
    assert strip_prefixes("reviewed on: May 3, 2024", prefixes) == "May 3, 2024"
    assert strip_prefixes("  3 de mayo  ", prefixes) == "3 de mayo"


def test_full_card():
    """Every field is read, trimmed and cleaned."""
    html = listing_page([review_card()])

    records = extract_records(html)

    assert records == [
        Record(
            title="Great stay",
            text="Clean rooms",
            score=8.5,
            date="3 de mayo de 2024",
            traveler_type="Pareja",
            nationality="España",
        )
    ]


def test_missing_fields_default():
    """A card with no optional fields yields neutral defaults."""
    html = listing_page([
        review_card(
            title="Only a title",
            text=None,
            score=None,
            date=None,
            traveler_type=None,
            flag_alt=None,
        )
    ])

    [record] = extract_records(html)

    assert record.title == "Only a title"
    assert record.text == ""
    assert record.score is None
    assert record.date == ""
    assert record.traveler_type == ""
    assert record.nationality == ""


def test_empty_card_is_valid():
    html = listing_page(['<div data-testid="review-card"></div>'])

    assert extract_records(html) == [Record()]


def test_nationality_prefers_image_alt():
    html = listing_page([review_card(flag_alt="Francia", country_text="Alemania")])

    assert extract_records(html)[0].nationality == "Francia"


def test_nationality_falls_back_to_text():
    """Text node is used when the flag image is absent or has an empty alt."""
    html = listing_page([
        review_card(flag_alt=None, country_text="  Italia "),
        review_card(flag_alt="", country_text="Portugal"),
    ])

    records = extract_records(html)

    assert [r.nationality for r in records] == ["Italia", "Portugal"]


def test_malformed_card_does_not_fail_page():
    """One unparseable score does not affect the other cards."""
    html = listing_page([
        review_card(title="first", score="Puntuación: 9,1"),
        review_card(title="broken", score="Puntuación: n/d"),
        review_card(title="third", score="6,0"),
    ])

    records = extract_records(html)

    assert [r.title for r in records] == ["first", "broken", "third"]
    assert [r.score for r in records] == [9.1, None, 6.0]


def test_no_cards():
    assert extract_records("<html><body><p>Nothing here</p></body></html>") == []
    assert extract_records("") == []


@pytest.mark.asyncio
async def test_extract_page_reads_current_dom():
    """extract_page reads the rendered page without navigating."""
    page = FakePage([listing_page([review_card(title="a"), review_card(title="b")])])
    await page.goto("https://example.com/reviews")
    session = SimpleNamespace(page=page)

    records = await RecordExtractor().extract_page(session)

    assert [r.title for r in records] == ["a", "b"]
    assert page.next_clicks == 0
    assert page.goto_calls == ["https://example.com/reviews"]


class TestPageFingerprint:
    """Card-markup identity used to confirm a "next" click moved the listing."""

    def test_same_page_same_fingerprint(self):
        html = listing_page([review_card(title="a"), review_card(title="b")], total_pages=2)

        assert page_fingerprint(html) == page_fingerprint(html)
        assert "a" in page_fingerprint(html)

    def test_different_cards_differ(self):
        first = listing_page([review_card(title="p1-r1")], total_pages=2)
        second = listing_page([review_card(title="p2-r1")], total_pages=2)

        assert page_fingerprint(first) != page_fingerprint(second)

    def test_ignores_markup_outside_cards(self):
        plain = listing_page([review_card(title="a")])
        with_banner = listing_page([review_card(title="a")], extra="<div id='promo'>Oferta</div>")

        assert page_fingerprint(plain) == page_fingerprint(with_banner)

    def test_no_cards(self):
        assert page_fingerprint("<html><body></body></html>") == ""
