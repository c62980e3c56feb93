"""Maps rendered review cards into Record objects."""

import logging
import re
from typing import Iterable, List, Optional

from selectolax.parser import HTMLParser, Node

from reviewscraper import metrics
from reviewscraper.ingest.base import Record
from reviewscraper.ingest.session_manager import Session
from reviewscraper.ingest.templates import BOOKING_TEMPLATE, ListingTemplate

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r'-?\d+(?:\.\d+)?')


def strip_prefixes(text: str, prefixes: Iterable[str]) -> str:
    """Trim ``text`` and drop the first boilerplate label it starts with."""
    cleaned = text.strip()
    for prefix in prefixes:
        if cleaned.lower().startswith(prefix.lower()):
            return cleaned[len(prefix):].strip()
    return cleaned


def parse_score(raw: str, prefixes: Iterable[str] = ()) -> Optional[float]:
    """
    Parse a comma-decimal score such as "Puntuación: 8,5".

    Returns:
        The numeric score, or None if no number can be read
    """
    cleaned = strip_prefixes(raw or "", prefixes).replace(",", ".")
    match = _NUMBER_RE.search(cleaned)
    if not match:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


def _text(card: Node, selector: str) -> str:
    node = card.css_first(selector)
    if node is None:
        return ""
    return (node.text(deep=True) or "").strip()


def _nationality(card: Node, template: ListingTemplate) -> str:
    image = card.css_first(template.nationality_image_selector)
    if image is not None:
        alt = (image.attributes.get("alt") or "").strip()
        if alt:
            return alt
    return _text(card, template.nationality_text_selector)


def extract_record(card: Node, template: ListingTemplate = BOOKING_TEMPLATE) -> Record:
    """Build one Record from a card node; absent fields get neutral defaults."""
    return Record(
        title=_text(card, template.title_selector),
        text=_text(card, template.text_selector),
        score=parse_score(_text(card, template.score_selector), template.score_prefixes),
        date=strip_prefixes(_text(card, template.date_selector), template.date_prefixes),
        traveler_type=_text(card, template.traveler_type_selector),
        nationality=_nationality(card, template),
    )


def extract_records(html: str, template: ListingTemplate = BOOKING_TEMPLATE) -> List[Record]:
    """Extract every review card from an HTML document, in DOM order."""
    tree = HTMLParser(html or "")
    records = []
    for index, card in enumerate(tree.css(template.card_selector)):
        try:
            records.append(extract_record(card, template))
        except Exception as e:
            # Unexpected markup on one card should not cost the page
            logger.warning(f"Card {index} could not be parsed, using empty record: {e}")
            records.append(Record())
    return records


def page_fingerprint(html: str, template: ListingTemplate = BOOKING_TEMPLATE) -> str:
    """Concatenated card markup; equal fingerprints mean the same listing page."""
    tree = HTMLParser(html or "")
    return "".join(card.html or "" for card in tree.css(template.card_selector))


class RecordExtractor:
    """Reads the currently rendered page. Never clicks or navigates."""

    def __init__(self, template: ListingTemplate = BOOKING_TEMPLATE):
        self.template = template

    async def extract_page(self, session: Session) -> List[Record]:
        html = await session.page.content()
        records = extract_records(html, self.template)
        metrics.records_extracted_total.inc(len(records))
        logger.debug(f"Extracted {len(records)} records from {session.page.url}")
        return records

    async def fingerprint(self, session: Session) -> str:
        """Identity of the rendered page: the markup of its cards."""
        return page_fingerprint(await session.page.content(), self.template)
