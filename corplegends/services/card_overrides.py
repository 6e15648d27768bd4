"""
Admin override channel.

Admins can replace individual card fields by id and set global album assets.
Overrides are applied by the roster provider before the core sees a roster,
so core logic never special-cases an edited card.
"""

import logging
from dataclasses import replace

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from corplegends.db.operations import CARD_OVERRIDES, GLOBAL_ASSETS
from corplegends.models.card import Card, Department, Rarity
from corplegends.services.album_store import AlbumStore

logger = logging.getLogger(__name__)

OVERRIDES_KEY = "cards"
ASSETS_KEY = "assets"


class CardOverride(BaseModel):
    """Replacement values for a card. Unset fields keep the roster value."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    role: str | None = None
    department: Department | None = None
    rarity: Rarity | None = None
    image_ref: str | None = None
    description: str | None = None
    power: int | None = Field(default=None, ge=1, le=99)


class GlobalAssets(BaseModel):
    """Album-wide artwork references."""

    logo_ref: str | None = None
    cover_ref: str | None = None
    background_ref: str | None = None


def apply_overrides(roster: list[Card], overrides: dict[int, CardOverride]) -> list[Card]:
    """Return the roster with each card's override fields merged in."""
    if not overrides:
        return list(roster)

    merged: list[Card] = []
    for card in roster:
        override = overrides.get(card.id)
        if override is None:
            merged.append(card)
            continue
        merged.append(replace(card, **override.model_dump(exclude_none=True)))
    return merged


async def load_overrides(store: AlbumStore) -> dict[int, CardOverride]:
    """Load every card override, keyed by card id."""
    data = await store.get_json(CARD_OVERRIDES, OVERRIDES_KEY)
    if not data:
        return {}
    if not isinstance(data, dict):
        logger.warning("CARD_OVERRIDES_UNREADABLE", extra={"type": type(data).__name__})
        return {}

    overrides: dict[int, CardOverride] = {}
    for card_id, raw in data.items():
        try:
            overrides[int(card_id)] = CardOverride.model_validate(raw)
        except ValueError as e:
            # pydantic.ValidationError is a ValueError
            logger.warning(
                "CARD_OVERRIDE_SKIPPED",
                extra={"card_id": card_id, "error": type(e).__name__},
            )
    return overrides


async def save_card_override(
    store: AlbumStore,
    card_id: int,
    override: CardOverride,
) -> CardOverride:
    """
    Merge an override into the stored overrides for a card.

    Fields set on `override` replace earlier overrides; others are kept.

    Returns:
        The combined override now stored for the card

    Raises:
        StorageFailureError: If the overrides no longer fit the quota
    """
    overrides = await load_overrides(store)
    existing = overrides.get(card_id, CardOverride())
    combined = existing.model_copy(update=override.model_dump(exclude_unset=True))
    overrides[card_id] = combined

    await store.set_json(
        CARD_OVERRIDES,
        OVERRIDES_KEY,
        {
            str(cid): o.model_dump(mode="json", exclude_none=True)
            for cid, o in sorted(overrides.items())
        },
    )
    logger.info("CARD_OVERRIDE_SAVED", extra={"card_id": card_id})
    return combined


async def load_global_assets(store: AlbumStore) -> GlobalAssets:
    data = await store.get_json(GLOBAL_ASSETS, ASSETS_KEY)
    if not data:
        return GlobalAssets()
    try:
        return GlobalAssets.model_validate(data)
    except ValidationError:
        logger.warning("GLOBAL_ASSETS_UNREADABLE")
        return GlobalAssets()


async def save_global_assets(store: AlbumStore, assets: GlobalAssets) -> GlobalAssets:
    """
    Merge and store global assets.

    Raises:
        StorageFailureError: If the assets exceed the quota
    """
    current = await load_global_assets(store)
    combined = current.model_copy(update=assets.model_dump(exclude_unset=True))
    await store.set_json(GLOBAL_ASSETS, ASSETS_KEY, combined.model_dump(mode="json"))
    return combined
