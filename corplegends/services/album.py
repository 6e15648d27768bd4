"""
Album Service — runs core operations as serialized store transactions.

Each mutating call fetches the roster first (so provider I/O failures surface
before anything is locked or changed), then applies the pure core functions
inside `AlbumStore.transact`. Achievement settlement runs in the same
transaction as the mutation that triggered it, so cards, unlocks and reward
packs are persisted together or not at all.
"""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from corplegends.config import settings
from corplegends.db.operations import TRADE_OFFERS
from corplegends.models.achievement import Achievement
from corplegends.models.card import Department
from corplegends.models.collection_state import CollectionState
from corplegends.models.trade_offer import TradeOffer
from corplegends.services.achievement_evaluator import settle_achievements
from corplegends.services.album_store import AlbumStore
from corplegends.services.pack_generator import PackConfig, PackResult, open_pack
from corplegends.services.registration import register, require_registered, verify_identity
from corplegends.services.roster_provider import RosterProvider
from corplegends.services.trade_engine import TradeResult, burn_trade, create_offer, market_offers

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class PackOpening:
    """A pack result plus the achievements it unlocked."""

    pack: PackResult
    unlocked: tuple[Achievement, ...]
    state: CollectionState


@dataclass(frozen=True)
class TradeOutcome:
    """A trade result plus the achievements it unlocked."""

    trade: TradeResult
    unlocked: tuple[Achievement, ...]
    state: CollectionState


class AlbumService:
    """
    Entry point used by the HTTP layer.

    Args:
        store: Persistence and mutation lock
        roster_provider: Roster access
        pack_config: Pack economy configuration
        starter_pack_grant: Packs granted at registration
        clock: Current-time source
        rng: Random source for draws and trades
    """

    def __init__(
        self,
        store: AlbumStore,
        roster_provider: RosterProvider,
        pack_config: PackConfig,
        starter_pack_grant: int = 1,
        clock: Callable[[], datetime] = utc_now,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.roster_provider = roster_provider
        self.pack_config = pack_config
        self.starter_pack_grant = starter_pack_grant
        self.clock = clock
        self.rng = rng or random.Random()

    async def get_state(self, user_id: str) -> CollectionState:
        return await self.store.load_state(user_id)

    async def register(
        self, user_id: str, display_name: str, contact_handle: str
    ) -> CollectionState:
        """Register an album and grant the starter packs."""

        def mutation(state: CollectionState) -> tuple[CollectionState, CollectionState]:
            new_state = register(state, display_name, contact_handle, self.starter_pack_grant)
            return new_state, new_state

        state = await self.store.transact(user_id, mutation)
        logger.info(
            "ALBUM_REGISTERED",
            extra={"user_id": user_id, "starter_packs": self.starter_pack_grant},
        )
        return state

    async def login(self, user_id: str, display_name: str, contact_handle: str) -> CollectionState:
        state = await self.store.load_state(user_id)
        verify_identity(state, display_name, contact_handle)
        return state

    async def open_pack(self, user_id: str) -> PackOpening:
        """
        Open one pack and settle achievements.

        Raises:
            NotRegisteredError: Album not registered
            NotEligibleError: No pack source available
            RosterUnavailableError: No roster
            StorageFailureError: State could not be saved
        """
        roster = await self.roster_provider.get_roster()
        now = self.clock()

        def mutation(state: CollectionState) -> tuple[CollectionState, PackOpening]:
            require_registered(state)
            result = open_pack(state, roster, now, self.pack_config, self.rng)
            settled, unlocked = settle_achievements(result.state, roster)
            return settled, PackOpening(pack=result, unlocked=tuple(unlocked), state=settled)

        return await self.store.transact(user_id, mutation)

    async def burn_trade(self, user_id: str, chosen_ids: list[int]) -> TradeOutcome:
        """
        Burn duplicates for a new card and settle achievements.

        Raises:
            NotRegisteredError: Album not registered
            InvalidSelectionError: Selection cannot be spent
            NothingToGrantError: Every card is owned
            StorageFailureError: State could not be saved
        """
        roster = await self.roster_provider.get_roster()

        def mutation(state: CollectionState) -> tuple[CollectionState, TradeOutcome]:
            require_registered(state)
            result = burn_trade(state, roster, chosen_ids, self.rng)
            settled, unlocked = settle_achievements(result.state, roster)
            return settled, TradeOutcome(trade=result, unlocked=tuple(unlocked), state=settled)

        return await self.store.transact(user_id, mutation)

    async def settle(self, user_id: str) -> list[Achievement]:
        """
        Evaluate achievements without any other mutation.

        Runs on login and album view, since the roster may have changed
        since the last visit.
        """
        roster = await self.roster_provider.get_roster()

        def mutation(state: CollectionState) -> tuple[CollectionState, list[Achievement]]:
            return settle_achievements(state, roster)

        return await self.store.transact(user_id, mutation)

    # -------------------------------------------------------------------------
    # Market offers
    # -------------------------------------------------------------------------

    async def declared_offers(self, user_id: str) -> list[TradeOffer]:
        data = await self.store.get_json(TRADE_OFFERS, user_id)
        return [TradeOffer.from_dict(raw) for raw in data or []]

    async def declare_offer(
        self, user_id: str, offering_ids: list[int], requesting: Department
    ) -> TradeOffer:
        """Record a cosmetic market offer. Nothing is reserved."""
        roster = await self.roster_provider.get_roster()
        async with self.store.lock_for(user_id):
            state = await self.store.load_state(user_id)
            require_registered(state)
            offer = create_offer(state, offering_ids, requesting, roster)
            offers = await self.declared_offers(user_id)
            offers.append(offer)
            await self.store.set_json(TRADE_OFFERS, user_id, [o.to_dict() for o in offers])
        logger.info("TRADE_OFFER_DECLARED", extra={"user_id": user_id, "offer_id": offer.id})
        return offer

    async def withdraw_offers(self, user_id: str) -> bool:
        """Remove every offer a user declared. Returns False if there were none."""
        async with self.store.lock_for(user_id):
            return await self.store.delete(TRADE_OFFERS, user_id)

    async def market(self) -> list[TradeOffer]:
        """Sample offers followed by every user's declared offers."""
        stored = await self.store.list_json(TRADE_OFFERS)
        declared = [TradeOffer.from_dict(raw) for offers in stored.values() for raw in offers]
        return market_offers(declared)


def build_album_service(store: AlbumStore, roster_provider: RosterProvider) -> AlbumService:
    """Build a service configured from settings."""
    return AlbumService(
        store=store,
        roster_provider=roster_provider,
        pack_config=PackConfig.from_settings(settings),
        starter_pack_grant=settings.starter_pack_grant,
    )
