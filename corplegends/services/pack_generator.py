"""
Pack Generator — draws a pack and folds it into the collection.

INVARIANTS:
- A pack holds exactly `pack_size` cards
- Exactly one consumption source is charged per pack:
  DAILY sets `last_pack_opened_at`, INVENTORY decrements `packs_available`
- When both sources are eligible, DAILY is used (inventory is conserved)
- Onboarding packs never repeat a card id within the pack
- Cards are returned in draw order, which is also mutation order
- A rejected open leaves the state untouched
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from corplegends.config import DailyPackPolicy, Settings
from corplegends.models.card import Card
from corplegends.models.collection_state import CollectionState
from corplegends.models.failure import NotEligibleError

logger = logging.getLogger(__name__)


class PackSource(str, Enum):
    """Where an opened pack was charged."""

    DAILY = "daily"
    INVENTORY = "inventory"


@dataclass(frozen=True)
class PackConfig:
    """
    Pack economy configuration.

    Attributes:
        pack_size: Cards per pack
        daily_policy: Rule for the free daily pack
        daily_cooldown: Rolling window for the COOLDOWN policy
        starter_sequences: Fixed card ids for the user's first packs;
            element N applies to the (N+1)th pack opened
    """

    pack_size: int = 5
    daily_policy: DailyPackPolicy = DailyPackPolicy.COOLDOWN
    daily_cooldown: timedelta = timedelta(hours=24)
    starter_sequences: tuple[tuple[int, ...], ...] = field(default_factory=tuple)

    def validate(self) -> None:
        if self.pack_size < 1:
            raise ValueError(f"pack_size must be at least 1, got {self.pack_size}")
        if self.daily_cooldown <= timedelta(0):
            raise ValueError("daily_cooldown must be positive")
        for index, sequence in enumerate(self.starter_sequences):
            if len(sequence) > self.pack_size:
                raise ValueError(
                    f"Starter sequence {index} has {len(sequence)} ids, "
                    f"more than pack_size={self.pack_size}"
                )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PackConfig":
        config = cls(
            pack_size=settings.pack_size,
            daily_policy=settings.daily_pack_policy,
            daily_cooldown=timedelta(hours=settings.daily_cooldown_hours),
            starter_sequences=tuple(tuple(seq) for seq in settings.starter_sequences),
        )
        config.validate()
        return config


DEFAULT_PACK_CONFIG = PackConfig()


@dataclass(frozen=True, slots=True)
class RevealedCard:
    """A drawn card with the reveal metadata the album shows."""

    card: Card
    is_new: bool
    copies_owned: int


@dataclass(frozen=True)
class PackResult:
    """Outcome of opening one pack."""

    state: CollectionState
    cards: tuple[Card, ...]
    source: PackSource
    reveals: tuple[RevealedCard, ...]


# =============================================================================
# ELIGIBILITY
# =============================================================================


def daily_allowance_available(
    state: CollectionState,
    now: datetime,
    config: PackConfig = DEFAULT_PACK_CONFIG,
) -> bool:
    """Check whether the free daily pack can be opened at `now`."""
    policy = config.daily_policy
    if policy == DailyPackPolicy.ALWAYS:
        return True
    if policy == DailyPackPolicy.INVENTORY_GATED:
        return state.packs_available == 0
    if policy == DailyPackPolicy.COOLDOWN:
        if state.last_pack_opened_at is None:
            return True
        return now - state.last_pack_opened_at >= config.daily_cooldown
    raise ValueError(f"Unhandled daily pack policy: {policy}")


def next_daily_pack_at(
    state: CollectionState,
    config: PackConfig = DEFAULT_PACK_CONFIG,
) -> datetime | None:
    """
    When the daily pack next becomes available under the COOLDOWN policy.

    Returns None when no waiting applies (other policies, or never opened).
    """
    if config.daily_policy != DailyPackPolicy.COOLDOWN or state.last_pack_opened_at is None:
        return None
    return state.last_pack_opened_at + config.daily_cooldown


def select_pack_source(
    state: CollectionState,
    now: datetime,
    config: PackConfig = DEFAULT_PACK_CONFIG,
) -> PackSource | None:
    """
    Pick the consumption source for the next pack.

    Returns None if no source is eligible.
    """
    if daily_allowance_available(state, now, config):
        return PackSource.DAILY
    if state.packs_available > 0:
        return PackSource.INVENTORY
    return None


def is_eligible(
    state: CollectionState,
    now: datetime,
    config: PackConfig = DEFAULT_PACK_CONFIG,
) -> bool:
    """Check whether a pack can be opened at `now`."""
    return select_pack_source(state, now, config) is not None


# =============================================================================
# DRAWING
# =============================================================================


def draw_cards(
    roster: list[Card],
    packs_opened: int,
    config: PackConfig = DEFAULT_PACK_CONFIG,
    rng: random.Random | None = None,
) -> list[Card]:
    """
    Draw one pack's worth of cards.

    Ordinary packs sample uniformly with replacement across the roster.
    If an onboarding sequence exists for this pack number, its ids come
    first (unknown or repeated ids skipped) and the remainder is filled
    with distinct random roster cards.
    """
    rng = rng or random.Random()

    if packs_opened < len(config.starter_sequences):
        return _draw_starter_pack(roster, config.starter_sequences[packs_opened], config, rng)

    return [rng.choice(roster) for _ in range(config.pack_size)]


def _draw_starter_pack(
    roster: list[Card],
    sequence: tuple[int, ...],
    config: PackConfig,
    rng: random.Random,
) -> list[Card]:
    by_id = {card.id: card for card in roster}
    pack: list[Card] = []
    seen: set[int] = set()

    for card_id in sequence:
        card = by_id.get(card_id)
        if card is None or card_id in seen:
            continue
        pack.append(card)
        seen.add(card_id)

    remaining = config.pack_size - len(pack)
    if remaining > 0:
        pool = [card for card in roster if card.id not in seen]
        if len(pool) >= remaining:
            pack.extend(rng.sample(pool, remaining))
        else:
            # Roster too small for a distinct pack; top up with replacement
            pack.extend(pool)
            pack.extend(rng.choice(roster) for _ in range(remaining - len(pool)))

    return pack


def add_cards(
    state: CollectionState,
    cards: list[Card],
) -> tuple[frozenset[int], dict[int, int], tuple[RevealedCard, ...]]:
    """
    Fold drawn cards into ownership, in order.

    The first copy of an unowned card becomes owned; every further copy
    increments its duplicate count.

    Returns:
        (owned_card_ids, duplicate_counts, reveals)
    """
    owned = set(state.owned_card_ids)
    duplicates = dict(state.duplicate_counts)
    reveals: list[RevealedCard] = []

    for card in cards:
        if card.id in owned:
            duplicates[card.id] = duplicates.get(card.id, 0) + 1
            is_new = False
        else:
            owned.add(card.id)
            is_new = True
        reveals.append(
            RevealedCard(card=card, is_new=is_new, copies_owned=1 + duplicates.get(card.id, 0))
        )

    return frozenset(owned), duplicates, tuple(reveals)


def open_pack(
    state: CollectionState,
    roster: list[Card],
    now: datetime,
    config: PackConfig = DEFAULT_PACK_CONFIG,
    rng: random.Random | None = None,
) -> PackResult:
    """
    Open one pack.

    Args:
        state: Current collection state (not modified)
        roster: Full card roster
        now: Current time, used for the daily allowance
        config: Pack economy configuration
        rng: Random source (injected for deterministic draws)

    Returns:
        PackResult with the new state and the drawn cards in draw order

    Raises:
        NotEligibleError: If the roster is empty or no pack source is eligible
    """
    if not roster:
        raise NotEligibleError(detail="Roster is empty")

    source = select_pack_source(state, now, config)
    if source is None:
        next_at = next_daily_pack_at(state, config)
        raise NotEligibleError(
            detail=f"Next daily pack at {next_at.isoformat()}" if next_at else "No packs available"
        )

    cards = draw_cards(roster, state.packs_opened, config, rng)
    owned, duplicates, reveals = add_cards(state, cards)

    if source == PackSource.DAILY:
        new_state = state.evolve(
            owned_card_ids=owned,
            duplicate_counts=duplicates,
            last_pack_opened_at=now,
            packs_opened=state.packs_opened + 1,
        )
    else:
        new_state = state.evolve(
            owned_card_ids=owned,
            duplicate_counts=duplicates,
            packs_available=state.packs_available - 1,
            packs_opened=state.packs_opened + 1,
        )

    logger.info(
        "PACK_OPENED",
        extra={
            "source": source.value,
            "card_ids": [card.id for card in cards],
            "new_cards": sum(1 for r in reveals if r.is_new),
        },
    )

    return PackResult(state=new_state, cards=tuple(cards), source=source, reveals=reveals)
