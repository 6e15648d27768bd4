"""
Roster and admin override endpoints.

Overrides replace card fields by id and are merged into every roster read.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from corplegends.api.album import CardModel
from corplegends.models.failure import CardNotFoundError
from corplegends.services.album_store import AlbumStore, get_album_store
from corplegends.services.card_overrides import (
    CardOverride,
    GlobalAssets,
    load_global_assets,
    save_card_override,
    save_global_assets,
)
from corplegends.services.roster_provider import RosterProvider, get_roster_provider

router = APIRouter(prefix="/roster", tags=["roster"])

StoreDep = Annotated[AlbumStore, Depends(get_album_store)]
RosterDep = Annotated[RosterProvider, Depends(get_roster_provider)]


@router.get("", response_model=list[CardModel])
async def get_roster(roster_provider: RosterDep) -> list[CardModel]:
    """Get the roster with admin overrides applied, in id order."""
    roster = await roster_provider.get_roster()
    return [CardModel.from_card(card) for card in roster]


@router.get("/assets", response_model=GlobalAssets)
async def get_assets(store: StoreDep) -> GlobalAssets:
    return await load_global_assets(store)


@router.put("/assets", response_model=GlobalAssets)
async def update_assets(assets: GlobalAssets, store: StoreDep) -> GlobalAssets:
    """
    Set album-wide artwork.

    Only the fields sent are changed. Fails with 507 over the storage quota.
    """
    return await save_global_assets(store, assets)


@router.put("/{card_id}", response_model=CardModel)
async def override_card(
    card_id: int,
    override: CardOverride,
    store: StoreDep,
    roster_provider: RosterDep,
) -> CardModel:
    """
    Replace fields of one card.

    Only the fields sent are changed; earlier overrides of other fields stay.
    Returns the card as every later roster read will see it.
    """
    base = await roster_provider.get_base_roster()
    if not any(card.id == card_id for card in base):
        raise CardNotFoundError(card_id)

    await save_card_override(store, card_id, override)

    roster = await roster_provider.get_roster()
    card = next(card for card in roster if card.id == card_id)
    return CardModel.from_card(card)
