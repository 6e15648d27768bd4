"""Tests for achievement evaluation and reward granting."""

import pytest

from corplegends.models.achievement import (
    ACHIEVEMENTS,
    ACHIEVEMENTS_BY_ID,
    Achievement,
    AchievementRule,
)
from corplegends.models.card import Card, Department, Rarity
from corplegends.models.collection_state import CollectionState
from corplegends.services.achievement_evaluator import (
    apply_unlocks,
    completion_ratio,
    department_complete,
    department_progress,
    evaluate,
    settle_achievements,
)

WITHOUT_THRESHOLD = tuple(
    a for a in ACHIEVEMENTS if a.rule != AchievementRule.COMPLETION_THRESHOLD
)


def owning(*card_ids: int, **kwargs) -> CollectionState:
    return CollectionState(owned_card_ids=frozenset(card_ids), **kwargs)


class TestEvaluate:
    def test_empty_album_unlocks_nothing(self, roster) -> None:
        assert evaluate(CollectionState(), roster) == []

    def test_first_pack_scenario(self, roster) -> None:
        """Owning ids 1-5 of ten with a Legendary at 5."""
        state = owning(1, 2, 3, 4, 5)

        assert evaluate(state, roster, WITHOUT_THRESHOLD) == ["first_step", "legend_hunter"]

        reward = sum(ACHIEVEMENTS_BY_ID[i].reward_packs for i in ["first_step", "legend_hunter"])
        assert apply_unlocks(state, ["first_step", "legend_hunter"]).packs_available == reward == 4

    def test_half_of_roster_meets_threshold(self, roster) -> None:
        """Five of ten is exactly the 50% threshold, which is inclusive."""
        assert evaluate(owning(1, 2, 3, 4, 5), roster) == [
            "first_step",
            "legend_hunter",
            "halfway_there",
        ]

    def test_below_threshold(self, roster) -> None:
        assert "halfway_there" not in evaluate(owning(1, 2, 3, 4), roster)

    def test_already_unlocked_never_reported(self, roster) -> None:
        state = owning(1, 2, 3, 4, 5, unlocked_achievement_ids=frozenset({"first_step"}))
        assert "first_step" not in evaluate(state, roster)

    def test_idempotent_after_apply(self, roster) -> None:
        state = owning(1, 2, 3, 4, 5)
        state = apply_unlocks(state, evaluate(state, roster))
        assert evaluate(state, roster) == []

    def test_department_completion(self, make_roster) -> None:
        roster = make_roster(6, departments=(Department.SALES, Department.IT))
        # Sales: 1, 3, 5
        assert "sales_complete" in evaluate(owning(1, 3, 5), roster)
        assert "it_complete" not in evaluate(owning(1, 3, 5), roster)

    def test_empty_department_never_completes(self, make_roster) -> None:
        roster = make_roster(4, departments=(Department.SALES,))
        state = owning(1, 2, 3, 4)

        unlocked = evaluate(state, roster)

        assert "sales_complete" in unlocked
        assert "logistics_complete" not in unlocked
        assert not department_complete(state, roster, Department.LOGISTICS)

    def test_full_collection_reports_every_applicable_rule(self, make_roster) -> None:
        roster = make_roster(4, legendary_ids=(2,), departments=(Department.HR,))
        unlocked = evaluate(owning(1, 2, 3, 4), roster)
        assert unlocked == ["first_step", "hr_complete", "legend_hunter", "halfway_there"]

    def test_cards_outside_roster_still_count(self, roster) -> None:
        """Cards dropped from the roster keep counting toward completion."""
        state = owning(1, 2, 3, 4, 101, 102)
        assert completion_ratio(state, roster) == pytest.approx(0.6)
        assert "halfway_there" in evaluate(state, roster)

    def test_rule_missing_parameter_fails_loudly(self, roster) -> None:
        catalog = (
            Achievement(
                id="broken",
                title="Broken",
                description="",
                icon="",
                reward_packs=1,
                rule=AchievementRule.RARITY_HUNT,
            ),
        )
        with pytest.raises(ValueError, match="no rarity"):
            evaluate(owning(1), roster, catalog)


class TestApplyUnlocks:
    def test_rewards_summed(self) -> None:
        state = apply_unlocks(CollectionState(packs_available=1), ["first_step", "sales_complete"])
        assert state.packs_available == 1 + 1 + 2
        assert state.unlocked_achievement_ids == frozenset({"first_step", "sales_complete"})

    def test_replayed_grant_pays_once(self) -> None:
        state = apply_unlocks(CollectionState(), ["first_step"])
        state = apply_unlocks(state, ["first_step", "first_step"])
        assert state.packs_available == 1

    def test_no_ids_returns_same_state(self) -> None:
        state = CollectionState(packs_available=2)
        assert apply_unlocks(state, []) is state

    def test_unknown_id_rejected(self) -> None:
        with pytest.raises(KeyError):
            apply_unlocks(CollectionState(), ["not_an_achievement"])


class TestSettleAchievements:
    def test_unregistered_album_earns_nothing(self, roster) -> None:
        state, unlocked = settle_achievements(owning(1, 5), roster)
        assert unlocked == []
        assert state.unlocked_achievement_ids == frozenset()

    def test_registered_album_settles(self, roster) -> None:
        state, unlocked = settle_achievements(owning(1, 5, is_registered=True), roster)
        assert [a.id for a in unlocked] == ["first_step", "legend_hunter"]
        assert state.packs_available == 4

    def test_monotonic(self, roster) -> None:
        state = owning(1, 2, 3, 4, 5, is_registered=True)
        settled, _ = settle_achievements(state, roster)
        again, unlocked = settle_achievements(settled, roster)

        assert unlocked == []
        assert again == settled
        assert settled.unlocked_achievement_ids >= state.unlocked_achievement_ids
        assert settled.packs_available >= state.packs_available


class TestProgress:
    def test_department_progress(self, roster) -> None:
        progress = department_progress(owning(1, 2, 3), roster)
        assert progress[Department.SALES] == (2, 5)
        assert progress[Department.MARKETING] == (1, 5)
        assert progress[Department.IT] == (0, 0)

    def test_completion_ratio_empty_roster(self) -> None:
        assert completion_ratio(owning(1), []) == 0.0

    def test_overridden_rarity_counts(self) -> None:
        roster = [
            Card(id=1, name="A", role="R", department=Department.IT, rarity=Rarity.LEGENDARY)
        ]
        assert "legend_hunter" in evaluate(owning(1), roster)
