"""Tests for the album service: registration, transactions and achievement settlement."""

import asyncio
import json
import random
from datetime import timedelta

import pytest

from corplegends.models.card import Department
from corplegends.models.collection_state import CollectionState
from corplegends.models.failure import (
    AlreadyRegisteredError,
    IdentityMismatchError,
    InvalidSelectionError,
    KnownError,
    NotEligibleError,
    NotRegisteredError,
    StorageFailureError,
)
from corplegends.models.trade_offer import SAMPLE_MARKET_OFFERS
from corplegends.services.album import AlbumService
from corplegends.services.album_store import AlbumStore
from corplegends.services.pack_generator import PackConfig, PackSource
from corplegends.services.roster_provider import RosterProvider


class StaticRosterProvider(RosterProvider):
    """Provider that serves a fixed roster."""

    def __init__(self, roster, store=None) -> None:
        super().__init__(store=store)
        self._base_roster = list(roster)


@pytest.fixture
def clock(now):
    current = {"now": now}

    def tick() -> object:
        return current["now"]

    tick.current = current  # type: ignore[attr-defined]
    return tick


@pytest.fixture
def make_service(store, roster, clock):
    def factory(rng: random.Random | None = None, **kwargs) -> AlbumService:
        return AlbumService(
            store=kwargs.pop("store", store),
            roster_provider=kwargs.pop("roster_provider", StaticRosterProvider(roster)),
            pack_config=kwargs.pop("pack_config", PackConfig()),
            clock=clock,
            rng=rng or random.Random(0),
            **kwargs,
        )

    return factory


class TestRegistration:
    async def test_register_grants_starter_packs(self, make_service) -> None:
        service = make_service(starter_pack_grant=2)

        state = await service.register("u1", "  John Doe ", "john@licon.com")

        assert state.is_registered
        assert state.display_name == "John Doe"
        assert state.packs_available == 2
        assert await service.get_state("u1") == state

    async def test_register_twice_rejected(self, make_service) -> None:
        service = make_service()
        await service.register("u1", "John", "john@licon.com")

        with pytest.raises(AlreadyRegisteredError):
            await service.register("u1", "Jane", "jane@licon.com")

        assert (await service.get_state("u1")).display_name == "John"

    async def test_blank_name_rejected(self, make_service) -> None:
        with pytest.raises(KnownError, match="required"):
            await make_service().register("u1", "   ", "john@licon.com")

    async def test_login_matches_ignoring_case(self, make_service) -> None:
        service = make_service()
        await service.register("u1", "John Doe", "John@Licon.com")

        state = await service.login("u1", "john  doe", "john@licon.com")

        assert state.is_registered

    async def test_login_mismatch(self, make_service) -> None:
        service = make_service()
        await service.register("u1", "John Doe", "john@licon.com")

        with pytest.raises(IdentityMismatchError):
            await service.login("u1", "John Doe", "other@licon.com")

    async def test_login_unknown_album(self, make_service) -> None:
        with pytest.raises(NotRegisteredError):
            await make_service().login("ghost", "John", "john@licon.com")


class TestOpenPack:
    async def test_requires_registration(self, make_service) -> None:
        with pytest.raises(NotRegisteredError):
            await make_service().open_pack("u1")

        assert await make_service().get_state("u1") == CollectionState()

    async def test_pack_and_rewards_persist_together(self, make_service, scripted_rng) -> None:
        service = make_service(rng=scripted_rng([1, 2, 3, 4, 5]), starter_pack_grant=0)
        await service.register("u1", "John", "john@licon.com")

        opening = await service.open_pack("u1")

        assert opening.pack.source == PackSource.DAILY
        assert [a.id for a in opening.unlocked] == ["first_step", "legend_hunter", "halfway_there"]
        stored = await service.get_state("u1")
        assert stored == opening.state
        assert stored.owned_card_ids == frozenset({1, 2, 3, 4, 5})
        assert stored.packs_available == 1 + 3 + 1
        assert stored.unlocked_achievement_ids == {"first_step", "legend_hunter", "halfway_there"}

    async def test_daily_then_inventory_then_not_eligible(
        self, make_service, clock, scripted_rng
    ) -> None:
        service = make_service(rng=scripted_rng([1] * 20), starter_pack_grant=1)
        await service.register("u1", "John", "john@licon.com")

        first = await service.open_pack("u1")
        assert first.pack.source == PackSource.DAILY
        # Starter pack plus the first_step reward
        assert first.state.packs_available == 2

        for _ in range(2):
            opening = await service.open_pack("u1")
            assert opening.pack.source == PackSource.INVENTORY

        with pytest.raises(NotEligibleError):
            await service.open_pack("u1")

        clock.current["now"] = clock.current["now"] + timedelta(hours=24)
        later = await service.open_pack("u1")
        assert later.pack.source == PackSource.DAILY
        assert later.state.copies_of(1) == 20

    async def test_storage_failure_keeps_previous_state(
        self, session_factory, make_service, scripted_rng
    ) -> None:
        """A save over quota leaves the last committed state durable."""
        service = make_service(rng=scripted_rng([1, 2, 3, 4, 5]))
        await service.register("u1", "John", "john@licon.com")
        before = await service.get_state("u1")

        tight = AlbumStore(session_factory, max_blob_bytes=len(json.dumps(before.to_dict())) + 20)
        tight_service = make_service(rng=scripted_rng([1, 2, 3, 4, 5]), store=tight)

        with pytest.raises(StorageFailureError):
            await tight_service.open_pack("u1")

        assert await service.get_state("u1") == before

    async def test_concurrent_opens_do_not_lose_updates(self, make_service) -> None:
        service = make_service(
            pack_config=PackConfig(pack_size=1),
            starter_pack_grant=6,
        )
        await service.register("u1", "John", "john@licon.com")

        results = await asyncio.gather(
            *(service.open_pack("u1") for _ in range(5)), return_exceptions=True
        )

        assert all(not isinstance(r, Exception) for r in results)
        state = await service.get_state("u1")
        assert state.packs_opened == 5
        assert state.total_cards() == 5


class TestBurnTrade:
    async def test_trade_persists_and_settles(self, store, make_service, scripted_rng) -> None:
        service = make_service(rng=scripted_rng([5]))
        await service.register("u1", "John", "john@licon.com")
        registered = await service.get_state("u1")
        await store.save_state(
            "u1",
            registered.evolve(
                owned_card_ids=frozenset({1, 2}),
                duplicate_counts={1: 2, 2: 1},
                unlocked_achievement_ids=frozenset({"first_step"}),
            ),
        )

        outcome = await service.burn_trade("u1", [1, 1, 2])

        assert outcome.trade.granted_card.id == 5
        assert [a.id for a in outcome.unlocked] == ["legend_hunter"]
        stored = await service.get_state("u1")
        assert stored.duplicate_counts == {}
        assert stored.owned_card_ids == frozenset({1, 2, 5})
        assert stored.packs_available == registered.packs_available + 3

    async def test_invalid_trade_changes_nothing(self, store, make_service) -> None:
        service = make_service()
        await service.register("u1", "John", "john@licon.com")
        before = await service.get_state("u1")

        with pytest.raises(InvalidSelectionError):
            await service.burn_trade("u1", [1, 1, 1])

        assert await service.get_state("u1") == before


class TestSettle:
    async def test_settle_after_roster_change(self, store, make_service, make_roster) -> None:
        """A card edited into a Legendary unlocks legend_hunter on the next visit."""
        service = make_service()
        await service.register("u1", "John", "john@licon.com")
        registered = await service.get_state("u1")
        await store.save_state(
            "u1",
            registered.evolve(
                owned_card_ids=frozenset({2}),
                unlocked_achievement_ids=frozenset({"first_step"}),
            ),
        )
        edited = make_service(roster_provider=StaticRosterProvider(make_roster(10, (2,))))

        unlocked = await edited.settle("u1")

        assert [a.id for a in unlocked] == ["legend_hunter"]
        assert await edited.settle("u1") == []


class TestOffers:
    async def test_declare_and_list(self, store, make_service) -> None:
        service = make_service()
        await service.register("u1", "John", "john@licon.com")
        registered = await service.get_state("u1")
        await store.save_state(
            "u1", registered.evolve(owned_card_ids=frozenset({1}), duplicate_counts={1: 1})
        )

        offer = await service.declare_offer("u1", [1], Department.HR)
        market = await service.market()

        assert market[-1] == offer
        assert len(market) == len(SAMPLE_MARKET_OFFERS) + 1
        assert (await service.get_state("u1")).duplicate_counts == {1: 1}

    async def test_withdraw(self, store, make_service) -> None:
        service = make_service()
        await service.register("u1", "John", "john@licon.com")
        registered = await service.get_state("u1")
        await store.save_state(
            "u1", registered.evolve(owned_card_ids=frozenset({1}), duplicate_counts={1: 1})
        )
        await service.declare_offer("u1", [1], Department.HR)

        assert await service.withdraw_offers("u1") is True
        assert await service.market() == list(SAMPLE_MARKET_OFFERS)

    async def test_declare_requires_registration(self, make_service) -> None:
        with pytest.raises(NotRegisteredError):
            await make_service().declare_offer("u1", [1], Department.HR)
