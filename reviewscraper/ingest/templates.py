"""Selector templates for review listings."""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class ListingTemplate:
    """CSS selectors and text cleanup rules for one review listing layout."""

    name: str

    # Review cards and their fields
    card_selector: str
    title_selector: str
    text_selector: str
    score_selector: str
    date_selector: str
    traveler_type_selector: str
    nationality_image_selector: str  # Flag image, country in alt attribute
    nationality_text_selector: str

    # Pagination
    next_button_selector: str  # Must only match an enabled control
    navigation_selector: str  # Container of the page-index list
    navigation_item_selector: str

    # Friction
    consent_button_selector: str
    expand_button_selector: str

    # Boilerplate labels stripped from field text
    score_prefixes: List[str] = field(default_factory=list)
    date_prefixes: List[str] = field(default_factory=list)


BOOKING_TEMPLATE = ListingTemplate(
    name="booking",
    card_selector='[data-testid="review-card"]',
    title_selector='[data-testid="review-title"]',
    text_selector='[data-testid="review-positive-text"] .b99b6ef58f',
    score_selector='[data-testid="review-score"] .bc946a29db',
    date_selector='[data-testid="review-date"]',
    traveler_type_selector='[data-testid="review-traveler-type"]',
    nationality_image_selector='img[class*="b8d1620349"]',
    nationality_text_selector='span[class*="d838fb5f41"]',
    next_button_selector='button[aria-label="Página siguiente"]:not([disabled])',
    navigation_selector='div[role="navigation"] ol',
    navigation_item_selector='div[role="navigation"] ol li',
    consent_button_selector='#onetrust-accept-btn-handler',
    expand_button_selector='button[data-testid="fr-read-all-reviews"]',
    score_prefixes=["Puntuación:", "Puntuación", "Scored", "Score:"],
    date_prefixes=["Fecha del comentario:", "Comentó el:", "Reviewed:", "Reviewed on:"],
)
