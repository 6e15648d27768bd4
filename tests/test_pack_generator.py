"""Tests for pack drawing, eligibility and ownership bookkeeping."""

import random
from datetime import timedelta

import pytest

from corplegends.config import DailyPackPolicy
from corplegends.models.collection_state import CollectionState
from corplegends.models.failure import FailureKind, NotEligibleError
from corplegends.services.achievement_evaluator import evaluate
from corplegends.services.pack_generator import (
    PackConfig,
    PackSource,
    add_cards,
    daily_allowance_available,
    draw_cards,
    is_eligible,
    next_daily_pack_at,
    open_pack,
    select_pack_source,
)


class TestPackConfig:
    def test_defaults(self) -> None:
        config = PackConfig()
        assert config.pack_size == 5
        assert config.daily_policy == DailyPackPolicy.COOLDOWN
        assert config.daily_cooldown == timedelta(hours=24)
        config.validate()

    def test_rejects_empty_pack(self) -> None:
        with pytest.raises(ValueError, match="pack_size"):
            PackConfig(pack_size=0).validate()

    def test_rejects_oversized_starter_sequence(self) -> None:
        config = PackConfig(pack_size=2, starter_sequences=((1, 2, 3),))
        with pytest.raises(ValueError, match="Starter sequence 0"):
            config.validate()


class TestEligibility:
    def test_fresh_state_gets_daily_pack(self, now) -> None:
        assert daily_allowance_available(CollectionState(), now)
        assert select_pack_source(CollectionState(), now) == PackSource.DAILY

    def test_cooldown_blocks_within_window(self, now) -> None:
        state = CollectionState(last_pack_opened_at=now - timedelta(hours=23, minutes=59))
        assert not daily_allowance_available(state, now)
        assert not is_eligible(state, now)

    def test_cooldown_releases_at_window_end(self, now) -> None:
        state = CollectionState(last_pack_opened_at=now - timedelta(hours=24))
        assert daily_allowance_available(state, now)

    def test_inventory_pack_when_daily_used(self, now) -> None:
        state = CollectionState(packs_available=1, last_pack_opened_at=now)
        assert select_pack_source(state, now) == PackSource.INVENTORY

    def test_daily_preferred_over_inventory(self, now) -> None:
        state = CollectionState(packs_available=4)
        assert select_pack_source(state, now) == PackSource.DAILY

    def test_always_policy(self, now) -> None:
        config = PackConfig(daily_policy=DailyPackPolicy.ALWAYS)
        state = CollectionState(last_pack_opened_at=now)
        assert daily_allowance_available(state, now, config)

    def test_inventory_gated_policy(self, now) -> None:
        config = PackConfig(daily_policy=DailyPackPolicy.INVENTORY_GATED)
        assert daily_allowance_available(CollectionState(last_pack_opened_at=now), now, config)
        assert not daily_allowance_available(CollectionState(packs_available=1), now, config)

    def test_next_daily_pack_at(self, now) -> None:
        assert next_daily_pack_at(CollectionState()) is None
        state = CollectionState(last_pack_opened_at=now)
        assert next_daily_pack_at(state) == now + timedelta(hours=24)
        always = PackConfig(daily_policy=DailyPackPolicy.ALWAYS)
        assert next_daily_pack_at(state, always) is None


class TestDrawCards:
    def test_draws_pack_size_cards(self, roster) -> None:
        cards = draw_cards(roster, packs_opened=0, rng=random.Random(7))
        assert len(cards) == 5
        assert all(card in roster for card in cards)

    def test_ordinary_draw_allows_repeats(self, roster, scripted_rng) -> None:
        cards = draw_cards(roster, packs_opened=0, rng=scripted_rng([3, 3, 3, 3, 3]))
        assert [card.id for card in cards] == [3, 3, 3, 3, 3]

    def test_starter_sequence_used_for_first_packs(self, make_roster) -> None:
        roster = make_roster(20)
        config = PackConfig(starter_sequences=((1, 2, 3, 4, 5), (6, 7)))

        first = draw_cards(roster, packs_opened=0, config=config, rng=random.Random(1))
        second = draw_cards(roster, packs_opened=1, config=config, rng=random.Random(1))

        assert [card.id for card in first] == [1, 2, 3, 4, 5]
        assert [card.id for card in second][:2] == [6, 7]
        assert len(second) == 5

    @pytest.mark.parametrize("seed", range(10))
    def test_starter_pack_never_repeats_ids(self, make_roster, seed: int) -> None:
        roster = make_roster(8)
        config = PackConfig(starter_sequences=((1, 1, 99, 2),))

        cards = draw_cards(roster, packs_opened=0, config=config, rng=random.Random(seed))

        ids = [card.id for card in cards]
        assert ids[:2] == [1, 2]
        assert len(ids) == 5
        assert len(set(ids)) == 5

    def test_starter_sequence_ignored_after_onboarding(self, roster, scripted_rng) -> None:
        config = PackConfig(starter_sequences=((1, 2, 3, 4, 5),))
        cards = draw_cards(roster, packs_opened=1, config=config, rng=scripted_rng([9] * 5))
        assert [card.id for card in cards] == [9] * 5


class TestAddCards:
    def test_first_copy_owned_then_duplicates(self, roster) -> None:
        by_id = {card.id: card for card in roster}
        state = CollectionState(owned_card_ids=frozenset({2}))

        owned, duplicates, reveals = add_cards(state, [by_id[1], by_id[1], by_id[2]])

        assert owned == frozenset({1, 2})
        assert duplicates == {1: 1, 2: 1}
        assert [(r.card.id, r.is_new, r.copies_owned) for r in reveals] == [
            (1, True, 1),
            (1, False, 2),
            (2, False, 2),
        ]


class TestOpenPack:
    def test_scenario_fresh_album_first_pack(self, roster, now, scripted_rng) -> None:
        """Ten-card roster, ids 1-5 drawn: five owned, no duplicates."""
        result = open_pack(CollectionState(), roster, now, rng=scripted_rng([1, 2, 3, 4, 5]))

        assert result.state.owned_card_ids == frozenset({1, 2, 3, 4, 5})
        assert result.state.duplicate_counts == {}
        assert [card.id for card in result.cards] == [1, 2, 3, 4, 5]
        assert result.source == PackSource.DAILY
        assert result.state.last_pack_opened_at == now
        assert result.state.packs_opened == 1

        unlocked = evaluate(result.state, roster)
        assert unlocked[:2] == ["first_step", "legend_hunter"]

    def test_scenario_repeated_card_in_one_pack(self, roster, now, scripted_rng) -> None:
        """Card 7 drawn twice in one pack from an empty album."""
        result = open_pack(CollectionState(), roster, now, rng=scripted_rng([7, 7, 1, 2, 3]))

        assert 7 in result.state.owned_card_ids
        assert result.state.duplicate_counts == {7: 1}
        assert result.state.copies_of(7) == 2

    def test_inventory_pack_decrements_once(self, roster, now, scripted_rng) -> None:
        state = CollectionState(packs_available=2, last_pack_opened_at=now)

        result = open_pack(state, roster, now, rng=scripted_rng([1, 2, 3, 4, 5]))

        assert result.source == PackSource.INVENTORY
        assert result.state.packs_available == 1
        assert result.state.last_pack_opened_at == now

    def test_daily_pack_keeps_inventory(self, roster, now) -> None:
        state = CollectionState(packs_available=2)

        result = open_pack(state, roster, now, rng=random.Random(3))

        assert result.source == PackSource.DAILY
        assert result.state.packs_available == 2

    def test_not_eligible_leaves_state_untouched(self, roster, now) -> None:
        state = CollectionState(last_pack_opened_at=now - timedelta(hours=1))

        with pytest.raises(NotEligibleError) as exc_info:
            open_pack(state, roster, now, rng=random.Random(0))

        assert exc_info.value.kind == FailureKind.NOT_ELIGIBLE
        assert "Next daily pack" in (exc_info.value.detail or "")
        assert state.owned_card_ids == frozenset()

    def test_empty_roster_not_eligible(self, now) -> None:
        with pytest.raises(NotEligibleError, match="No pack"):
            open_pack(CollectionState(), [], now)

    def test_card_totals_grow_by_pack_size(self, roster, now) -> None:
        rng = random.Random(11)
        state = CollectionState(packs_available=3)

        for _ in range(4):
            before = state.total_cards()
            state = open_pack(state, roster, now, rng=rng).state
            assert state.total_cards() == before + 5

        assert state.packs_available == 0
        assert state.packs_opened == 4
