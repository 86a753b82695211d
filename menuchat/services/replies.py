"""
Deterministic Reply Dispatcher

Keyword-driven chat responder used by the widget. Maps a free-text
question and the tenant's menu snapshot to a short text, suggestion
chips and at most three item cards.

Rules are tried in a fixed order and the first match wins:
    1. Italian    (pizza, pasta, risotto, ...)
    2. Indian     (curry, tikka, naan, ...)
    3. Asian      (sushi, ramen, noodles, ...)
    4. Vegan      (vegan, plant-based)
    5. Popular    (popular, recommend, best)
No rule matched: the first few items with a generic prompt.

reply() is pure and never raises.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from menuchat.schemas import CardView, ChatReply, MenuItemView

logger = logging.getLogger(__name__)

MAX_CARDS = 3
MAX_TEXT_LENGTH = 450

VEGAN_TAGS = frozenset({"vegan", "plant-based"})
POPULAR_TAGS = frozenset({"popular", "bestseller", "signature"})

GENERIC_TEXT = (
    "Here are a few dishes from our menu. Ask me about vegan options, "
    "our most popular dishes or a cuisine you fancy."
)
GENERIC_CHIPS = ["Vegan options", "Most popular", "Italian dishes"]


@dataclass(frozen=True)
class ReplyRule:
    """One keyword rule: when `query` matches, cards come from `predicate`."""
    name: str
    query: re.Pattern
    predicate: Callable[[MenuItemView], bool]
    found_text: str
    empty_text: str
    chips: tuple[str, ...]
    fallback_to_menu: bool = False


def _text_matches(pattern: re.Pattern) -> Callable[[MenuItemView], bool]:
    def predicate(item: MenuItemView) -> bool:
        return bool(pattern.search(item.name) or pattern.search(item.description or ""))
    return predicate


def _tagged(tags: frozenset) -> Callable[[MenuItemView], bool]:
    def predicate(item: MenuItemView) -> bool:
        return any(tag.lower() in tags for tag in item.tags)
    return predicate


RULES: tuple[ReplyRule, ...] = (
    ReplyRule(
        name="italian",
        query=re.compile(r"\b(italian|italy|pizzas?|pasta|risotto|lasagne|lasagna)\b"),
        predicate=_text_matches(re.compile(
            r"pizza|pasta|risotto|lasagn|margherita|carbonara|bolognese|spaghetti|penne|tiramisu|italian",
            re.IGNORECASE,
        )),
        found_text="Here are some Italian picks.",
        empty_text="I couldn't spot Italian dishes on today's menu, but have a look at what we do serve.",
        chips=("Vegan options", "Most popular"),
    ),
    ReplyRule(
        name="indian",
        query=re.compile(r"\b(indian|india|curry|curries|masala|tikka|naan|biryani|tandoori)\b"),
        predicate=_text_matches(re.compile(
            r"curry|masala|tikka|naan|biryani|tandoori|korma|dal|paneer|samosa|vindaloo|indian",
            re.IGNORECASE,
        )),
        found_text="Here are some Indian favourites.",
        empty_text="I couldn't spot Indian dishes on today's menu, but have a look at what we do serve.",
        chips=("Vegan options", "Most popular"),
    ),
    ReplyRule(
        name="asian",
        query=re.compile(r"\b(asian|sushi|ramen|noodles?|thai|wok|dumplings?|japanese|chinese)\b"),
        predicate=_text_matches(re.compile(
            r"sushi|ramen|noodle|pad thai|thai|wok|dumpling|gyoza|teriyaki|udon|bao|asian",
            re.IGNORECASE,
        )),
        found_text="Here are some Asian dishes you might like.",
        empty_text="I couldn't spot Asian dishes on today's menu, but have a look at what we do serve.",
        chips=("Vegan options", "Most popular"),
    ),
    ReplyRule(
        name="vegan",
        query=re.compile(r"\b(vegan|plant[- ]?based|plants?)\b"),
        predicate=_tagged(VEGAN_TAGS),
        found_text="These dishes are vegan.",
        empty_text=(
            "I couldn't find dishes tagged vegan, but many can be adapted: "
            "ask us to swap cheese, cream or meat for plant-based alternatives."
        ),
        chips=("Ask about swaps", "Most popular"),
    ),
    ReplyRule(
        name="popular",
        query=re.compile(r"\b(popular|recommend\w*|best|favou?rites?)\b"),
        predicate=_tagged(POPULAR_TAGS),
        found_text="These are our guests' favourites.",
        empty_text="Our guests often start with these.",
        chips=("Vegan options", "Italian dishes"),
        fallback_to_menu=True,
    ),
)


def match_rule(query: str) -> Optional[ReplyRule]:
    """First rule whose keywords appear in the lower-cased query."""
    lowered = query.lower()
    for rule in RULES:
        if rule.query.search(lowered):
            return rule
    return None


def _cards(items: Sequence[MenuItemView]) -> list[CardView]:
    return [CardView.from_item(item) for item in items[:MAX_CARDS]]


def _clip(text: str) -> str:
    return text if len(text) <= MAX_TEXT_LENGTH else text[:MAX_TEXT_LENGTH - 1] + "…"


def reply(query: str, items: Sequence[MenuItemView]) -> ChatReply:
    """
    Build a canned chat reply for a question over a menu snapshot.

    Args:
        query: Free-text guest message
        items: Menu items (treated as an immutable snapshot)

    Returns:
        ChatReply with text, chips and up to three cards
    """
    try:
        offered = [item for item in (items or []) if item.is_available]
        rule = match_rule(query or "")

        if rule is None:
            return ChatReply(text=GENERIC_TEXT, chips=GENERIC_CHIPS, cards=_cards(offered))

        matched = [item for item in offered if rule.predicate(item)]
        if matched:
            return ChatReply(text=_clip(rule.found_text), chips=list(rule.chips), cards=_cards(matched))

        fallback = _cards(offered) if rule.fallback_to_menu else []
        if rule.fallback_to_menu and not fallback:
            return ChatReply(text=GENERIC_TEXT, chips=GENERIC_CHIPS, cards=[])
        return ChatReply(text=_clip(rule.empty_text), chips=list(rule.chips), cards=fallback)

    except Exception:
        logger.exception("Reply dispatcher failed; returning generic reply")
        return ChatReply(text=GENERIC_TEXT, chips=GENERIC_CHIPS, cards=[])
