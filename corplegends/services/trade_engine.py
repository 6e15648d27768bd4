"""
Trade Engine — burn duplicates for a guaranteed new card.

A burn trade spends exactly BURN_TRADE_SIZE duplicates and grants one card
the player does not own yet. Chosen ids may repeat as long as the duplicate
balance covers every copy spent.

INVARIANTS:
- A valid trade lowers the total duplicate count by exactly BURN_TRADE_SIZE
- A valid trade raises the unique card count by exactly one
- The granted card was unowned before the trade
- A rejected trade spends nothing

Market offers are cosmetic: they are listed and recorded but never settled.
"""

import logging
import random
import uuid
from collections import Counter
from dataclasses import dataclass

from corplegends.config import BURN_TRADE_SIZE
from corplegends.models.card import Card, Department
from corplegends.models.collection_state import CollectionState
from corplegends.models.failure import InvalidSelectionError, NothingToGrantError
from corplegends.models.trade_offer import SAMPLE_MARKET_OFFERS, TradeOffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TradeResult:
    """Outcome of a burn trade."""

    state: CollectionState
    granted_card: Card
    spent: tuple[int, ...]


def duplicate_cards(state: CollectionState, roster: list[Card]) -> list[tuple[Card, int]]:
    """Roster cards with spare copies, in roster order, with their duplicate counts."""
    return [
        (card, state.duplicates_of(card.id)) for card in roster if state.duplicates_of(card.id) > 0
    ]


def unowned_cards(state: CollectionState, roster: list[Card]) -> list[Card]:
    """Roster cards the player does not own."""
    return [card for card in roster if card.id not in state.owned_card_ids]


def validate_selection(state: CollectionState, chosen_ids: list[int]) -> Counter[int]:
    """
    Check that a selection can be burned.

    Returns:
        Copies to spend per card id

    Raises:
        InvalidSelectionError: Wrong count, or a chosen id lacks the duplicates
    """
    if len(chosen_ids) != BURN_TRADE_SIZE:
        raise InvalidSelectionError(
            detail=f"Expected {BURN_TRADE_SIZE} duplicates, got {len(chosen_ids)}"
        )

    spend = Counter(chosen_ids)
    for card_id, needed in spend.items():
        available = state.duplicates_of(card_id)
        if needed > available:
            raise InvalidSelectionError(
                detail=f"Card {card_id}: {needed} duplicates chosen, {available} available"
            )

    return spend


def burn_trade(
    state: CollectionState,
    roster: list[Card],
    chosen_ids: list[int],
    rng: random.Random | None = None,
) -> TradeResult:
    """
    Trade BURN_TRADE_SIZE duplicates for one random unowned card.

    Args:
        state: Current collection state (not modified)
        roster: Full card roster
        chosen_ids: Duplicate card ids to spend (may repeat)
        rng: Random source (injected for deterministic grants)

    Returns:
        TradeResult with the new state and the granted card

    Raises:
        InvalidSelectionError: Selection cannot be spent
        NothingToGrantError: Every roster card is already owned
    """
    spend = validate_selection(state, chosen_ids)

    pool = unowned_cards(state, roster)
    if not pool:
        raise NothingToGrantError()

    rng = rng or random.Random()
    granted = rng.choice(pool)

    duplicates = dict(state.duplicate_counts)
    for card_id, count in spend.items():
        remaining = duplicates[card_id] - count
        if remaining > 0:
            duplicates[card_id] = remaining
        else:
            del duplicates[card_id]

    new_state = state.evolve(
        owned_card_ids=state.owned_card_ids | {granted.id},
        duplicate_counts=duplicates,
    )

    logger.info(
        "BURN_TRADE_COMPLETED",
        extra={"spent": list(chosen_ids), "granted": granted.id},
    )

    return TradeResult(state=new_state, granted_card=granted, spent=tuple(chosen_ids))


# =============================================================================
# MARKET OFFERS
# =============================================================================


def create_offer(
    state: CollectionState,
    offering_ids: list[int],
    requesting: Department,
    roster: list[Card],
) -> TradeOffer:
    """
    Declare a market offer from the player's spare duplicates.

    The offer is advertised only; nothing is reserved or spent.

    Raises:
        InvalidSelectionError: No ids offered, or an id is not a spare duplicate
    """
    if not offering_ids:
        raise InvalidSelectionError(detail="An offer needs at least one card")

    spend = Counter(offering_ids)
    for card_id, count in spend.items():
        if count > state.duplicates_of(card_id):
            raise InvalidSelectionError(detail=f"Card {card_id} is not a spare duplicate")

    by_id = {card.id: card for card in roster}
    departments = {by_id[card_id].department for card_id in spend if card_id in by_id}
    offering_department = departments.pop() if len(departments) == 1 else None

    return TradeOffer(
        id=uuid.uuid4().hex[:12],
        user_name=state.display_name,
        offering_department=offering_department,
        requesting=requesting,
        offering_card_ids=tuple(offering_ids),
    )


def market_offers(declared: list[TradeOffer]) -> list[TradeOffer]:
    """Sample market offers followed by player-declared ones."""
    return [*SAMPLE_MARKET_OFFERS, *declared]
