"""
Album API endpoints.

Thin HTTP surface over AlbumService. Core failures are raised as KnownError
subclasses and rendered by the application's exception handler.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from corplegends.models.achievement import ACHIEVEMENTS, Achievement
from corplegends.models.card import Card, Department, Rarity
from corplegends.models.collection_state import CollectionState
from corplegends.services.achievement_evaluator import completion_ratio, department_progress
from corplegends.services.album import AlbumService, build_album_service
from corplegends.services.album_store import AlbumStore, get_album_store
from corplegends.services.pack_generator import (
    daily_allowance_available,
    next_daily_pack_at,
    select_pack_source,
)
from corplegends.services.roster_provider import RosterProvider, get_roster_provider
from corplegends.services.trade_engine import duplicate_cards

router = APIRouter(prefix="/album", tags=["album"])


def get_album_service(
    store: Annotated[AlbumStore, Depends(get_album_store)],
    roster_provider: Annotated[RosterProvider, Depends(get_roster_provider)],
) -> AlbumService:
    return build_album_service(store, roster_provider)


AlbumServiceDep = Annotated[AlbumService, Depends(get_album_service)]


# =============================================================================
# SCHEMAS
# =============================================================================


class CardModel(BaseModel):
    """A roster card."""

    id: int
    name: str
    role: str
    department: Department
    rarity: Rarity
    image_ref: str
    description: str
    power: int

    @classmethod
    def from_card(cls, card: Card) -> "CardModel":
        return cls(**card.to_dict())  # type: ignore[arg-type]


class AchievementModel(BaseModel):
    id: str
    title: str
    description: str
    icon: str
    reward_packs: int
    unlocked: bool = False

    @classmethod
    def from_achievement(cls, achievement: Achievement, unlocked: bool) -> "AchievementModel":
        return cls(
            id=achievement.id,
            title=achievement.title,
            description=achievement.description,
            icon=achievement.icon,
            reward_packs=achievement.reward_packs,
            unlocked=unlocked,
        )


class RegisterRequest(BaseModel):
    """Request model for registration and login."""

    display_name: str = Field(..., min_length=1, examples=["John Doe"])
    contact_handle: str = Field(..., min_length=1, examples=["john@licon.com"])


class DepartmentProgress(BaseModel):
    department: Department
    owned: int
    total: int


class AlbumResponse(BaseModel):
    """Response model for album state."""

    user_id: str
    display_name: str
    contact_handle: str
    is_registered: bool
    owned_card_ids: list[int] = Field(default_factory=list)
    duplicate_counts: dict[int, int] = Field(default_factory=dict)
    unlocked_achievement_ids: list[str] = Field(default_factory=list)
    packs_available: int = 0
    last_pack_opened_at: datetime | None = None
    unique_cards: int = 0
    total_cards: int = 0
    completion_percentage: int = 0
    can_open_pack: bool = False
    daily_pack_available: bool = False
    next_daily_pack_at: datetime | None = None
    departments: list[DepartmentProgress] = Field(default_factory=list)


class RevealedCardModel(BaseModel):
    card: CardModel
    is_new: bool
    copies_owned: int


class PackOpenResponse(BaseModel):
    """Response model for an opened pack, cards in reveal order."""

    user_id: str
    source: str
    cards: list[RevealedCardModel]
    unlocked_achievements: list[AchievementModel] = Field(default_factory=list)
    packs_available: int


class BurnTradeRequest(BaseModel):
    card_ids: list[int] = Field(
        ...,
        description="Duplicate card ids to spend; ids may repeat",
        examples=[[12, 12, 40]],
    )


class BurnTradeResponse(BaseModel):
    user_id: str
    granted_card: CardModel
    spent: list[int]
    unlocked_achievements: list[AchievementModel] = Field(default_factory=list)
    packs_available: int


class DuplicateModel(BaseModel):
    card: CardModel
    count: int


class DuplicatesResponse(BaseModel):
    user_id: str
    duplicates: list[DuplicateModel] = Field(default_factory=list)
    total_duplicates: int = 0


def _album_response(
    user_id: str, state: CollectionState, roster: list[Card], service: AlbumService
) -> AlbumResponse:
    now = service.clock()
    config = service.pack_config
    return AlbumResponse(
        user_id=user_id,
        display_name=state.display_name,
        contact_handle=state.contact_handle,
        is_registered=state.is_registered,
        owned_card_ids=sorted(state.owned_card_ids),
        duplicate_counts=dict(sorted(state.duplicate_counts.items())),
        unlocked_achievement_ids=sorted(state.unlocked_achievement_ids),
        packs_available=state.packs_available,
        last_pack_opened_at=state.last_pack_opened_at,
        unique_cards=state.unique_cards(),
        total_cards=state.total_cards(),
        completion_percentage=min(100, round(completion_ratio(state, roster) * 100)),
        can_open_pack=state.is_registered and select_pack_source(state, now, config) is not None,
        daily_pack_available=daily_allowance_available(state, now, config),
        next_daily_pack_at=next_daily_pack_at(state, config),
        departments=[
            DepartmentProgress(department=department, owned=owned, total=total)
            for department, (owned, total) in department_progress(state, roster).items()
        ],
    )


# =============================================================================
# ENDPOINTS
# =============================================================================


@router.post("/{user_id}/register", response_model=AlbumResponse)
async def register_album(
    user_id: str,
    request: RegisterRequest,
    service: AlbumServiceDep,
) -> AlbumResponse:
    """
    Create an album.

    Grants the starter packs. Fails with 409 if the album already exists.
    """
    state = await service.register(user_id, request.display_name, request.contact_handle)
    roster = await service.roster_provider.get_roster()
    return _album_response(user_id, state, roster, service)


@router.post("/{user_id}/login", response_model=AlbumResponse)
async def login(
    user_id: str,
    request: RegisterRequest,
    service: AlbumServiceDep,
) -> AlbumResponse:
    """
    Open an existing album by name and email.

    Also settles any achievement that became satisfied since the last
    visit (for example after a roster change).
    """
    await service.login(user_id, request.display_name, request.contact_handle)
    await service.settle(user_id)
    state = await service.get_state(user_id)
    roster = await service.roster_provider.get_roster()
    return _album_response(user_id, state, roster, service)


@router.get("/{user_id}", response_model=AlbumResponse)
async def get_album(user_id: str, service: AlbumServiceDep) -> AlbumResponse:
    """
    Get a user's album.

    Unknown users get an empty, unregistered album. Registered albums settle
    achievements first, so roster edits since the last visit are rewarded.
    """
    await service.settle(user_id)
    state = await service.get_state(user_id)
    roster = await service.roster_provider.get_roster()
    return _album_response(user_id, state, roster, service)


@router.post("/{user_id}/packs/open", response_model=PackOpenResponse)
async def open_pack(user_id: str, service: AlbumServiceDep) -> PackOpenResponse:
    """
    Open one pack.

    Uses the daily pack when available, otherwise an inventory pack.
    Returns cards in reveal order and every achievement the pack unlocked.
    """
    opening = await service.open_pack(user_id)
    return PackOpenResponse(
        user_id=user_id,
        source=opening.pack.source.value,
        cards=[
            RevealedCardModel(
                card=CardModel.from_card(reveal.card),
                is_new=reveal.is_new,
                copies_owned=reveal.copies_owned,
            )
            for reveal in opening.pack.reveals
        ],
        unlocked_achievements=[
            AchievementModel.from_achievement(a, unlocked=True) for a in opening.unlocked
        ],
        packs_available=opening.state.packs_available,
    )


@router.get("/{user_id}/achievements", response_model=list[AchievementModel])
async def list_achievements(user_id: str, service: AlbumServiceDep) -> list[AchievementModel]:
    """Get the achievement catalog with the user's unlock flags."""
    state = await service.get_state(user_id)
    return [
        AchievementModel.from_achievement(a, unlocked=a.id in state.unlocked_achievement_ids)
        for a in ACHIEVEMENTS
    ]


@router.get("/{user_id}/duplicates", response_model=DuplicatesResponse)
async def list_duplicates(user_id: str, service: AlbumServiceDep) -> DuplicatesResponse:
    """Get the user's spare copies, in roster order."""
    state = await service.get_state(user_id)
    roster = await service.roster_provider.get_roster()
    return DuplicatesResponse(
        user_id=user_id,
        duplicates=[
            DuplicateModel(card=CardModel.from_card(card), count=count)
            for card, count in duplicate_cards(state, roster)
        ],
        total_duplicates=state.total_duplicates(),
    )


@router.post("/{user_id}/trade/burn", response_model=BurnTradeResponse)
async def burn_trade(
    user_id: str,
    request: BurnTradeRequest,
    service: AlbumServiceDep,
) -> BurnTradeResponse:
    """
    Trade three duplicates for one card you do not own yet.

    Fails with 400 for an invalid selection and 409 when every card is owned.
    Nothing is spent on failure.
    """
    outcome = await service.burn_trade(user_id, request.card_ids)
    return BurnTradeResponse(
        user_id=user_id,
        granted_card=CardModel.from_card(outcome.trade.granted_card),
        spent=list(outcome.trade.spent),
        unlocked_achievements=[
            AchievementModel.from_achievement(a, unlocked=True) for a in outcome.unlocked
        ],
        packs_available=outcome.state.packs_available,
    )
