"""
Achievement Evaluator — reports newly satisfied achievement rules.

`evaluate` is pure: it reads the state and roster and returns ids. Granting
is a separate, atomic transition (`apply_unlocks`) that records the unlock
and adds its reward packs together.

INVARIANTS:
- An achievement is never reported once it is in `unlocked_achievement_ids`
- Every newly satisfied achievement is reported, not just the first
- Unlocking and rewarding happen in one state transition
- The evaluator only adds packs and ids, never removes them
"""

import logging

from corplegends.models.achievement import (
    ACHIEVEMENTS,
    ACHIEVEMENTS_BY_ID,
    Achievement,
    AchievementRule,
)
from corplegends.models.card import Card, Department
from corplegends.models.collection_state import CollectionState

logger = logging.getLogger(__name__)


def completion_ratio(state: CollectionState, roster: list[Card]) -> float:
    """
    Owned unique cards over roster size. 0.0 for an empty roster.

    Every owned id counts, including ids the current roster no longer has.
    """
    if not roster:
        return 0.0
    return len(state.owned_card_ids) / len(roster)


def department_complete(state: CollectionState, roster: list[Card], department: Department) -> bool:
    """
    Check if every roster card of a department is owned.

    A department with no roster cards is never complete.
    """
    department_cards = [card for card in roster if card.department == department]
    if not department_cards:
        return False
    return all(card.id in state.owned_card_ids for card in department_cards)


def department_progress(
    state: CollectionState, roster: list[Card]
) -> dict[Department, tuple[int, int]]:
    """Owned and total roster cards per department."""
    progress: dict[Department, tuple[int, int]] = {}
    for department in Department:
        ids = {card.id for card in roster if card.department == department}
        progress[department] = (len(ids & state.owned_card_ids), len(ids))
    return progress


def is_satisfied(achievement: Achievement, state: CollectionState, roster: list[Card]) -> bool:
    """
    Evaluate one achievement's rule against the current collection.

    Raises:
        ValueError: If the rule kind or its parameters are not handled
    """
    rule = achievement.rule

    if rule == AchievementRule.FIRST_COPY:
        return len(state.owned_card_ids) > 0

    if rule == AchievementRule.DEPARTMENT_COMPLETE:
        if achievement.department is None:
            raise ValueError(f"Achievement {achievement.id} has no department")
        return department_complete(state, roster, achievement.department)

    if rule == AchievementRule.RARITY_HUNT:
        if achievement.rarity is None:
            raise ValueError(f"Achievement {achievement.id} has no rarity")
        return any(
            card.rarity == achievement.rarity and card.id in state.owned_card_ids
            for card in roster
        )

    if rule == AchievementRule.COMPLETION_THRESHOLD:
        return bool(roster) and completion_ratio(state, roster) >= achievement.threshold

    raise ValueError(f"Unhandled achievement rule: {rule}")


def evaluate(
    state: CollectionState,
    roster: list[Card],
    catalog: tuple[Achievement, ...] = ACHIEVEMENTS,
) -> list[str]:
    """
    Find achievements that are newly satisfied.

    Pure: no side effects. Ids are returned in catalog order.

    Returns:
        Ids of satisfied achievements not yet unlocked
    """
    return [
        achievement.id
        for achievement in catalog
        if achievement.id not in state.unlocked_achievement_ids
        and is_satisfied(achievement, state, roster)
    ]


def apply_unlocks(
    state: CollectionState,
    achievement_ids: list[str],
    catalog_by_id: dict[str, Achievement] = ACHIEVEMENTS_BY_ID,
) -> CollectionState:
    """
    Record unlocks and grant their reward packs in one transition.

    Ids already unlocked are ignored, so a replayed grant never pays twice.

    Raises:
        KeyError: If an id is not in the catalog
    """
    fresh: list[Achievement] = []
    for achievement_id in dict.fromkeys(achievement_ids):
        if achievement_id in state.unlocked_achievement_ids:
            continue
        fresh.append(catalog_by_id[achievement_id])

    if not fresh:
        return state

    reward = sum(achievement.reward_packs for achievement in fresh)
    return state.evolve(
        unlocked_achievement_ids=state.unlocked_achievement_ids | {a.id for a in fresh},
        packs_available=state.packs_available + reward,
    )


def settle_achievements(
    state: CollectionState,
    roster: list[Card],
    catalog: tuple[Achievement, ...] = ACHIEVEMENTS,
) -> tuple[CollectionState, list[Achievement]]:
    """
    Evaluate and grant in one step.

    Only registered albums earn achievements.

    Returns:
        (new_state, newly unlocked achievements in catalog order)
    """
    if not state.is_registered:
        return state, []

    new_ids = evaluate(state, roster, catalog)
    if not new_ids:
        return state, []

    catalog_by_id = {achievement.id: achievement for achievement in catalog}
    new_state = apply_unlocks(state, new_ids, catalog_by_id)
    unlocked = [catalog_by_id[achievement_id] for achievement_id in new_ids]

    logger.info(
        "ACHIEVEMENTS_UNLOCKED",
        extra={
            "achievement_ids": new_ids,
            "reward_packs": sum(a.reward_packs for a in unlocked),
        },
    )

    return new_state, unlocked
