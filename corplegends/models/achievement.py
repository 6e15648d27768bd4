"""
Achievement catalog.

The catalog is fixed configuration data, not runtime state. Each entry names
the rule that unlocks it; the evaluator dispatches on `AchievementRule`
exhaustively, so adding a rule kind without teaching the evaluator fails
loudly instead of silently never unlocking.
"""

from dataclasses import dataclass
from enum import Enum

from corplegends.models.card import Department, Rarity


class AchievementRule(str, Enum):
    """Kinds of unlock rule."""

    FIRST_COPY = "first_copy"
    DEPARTMENT_COMPLETE = "department_complete"
    RARITY_HUNT = "rarity_hunt"
    COMPLETION_THRESHOLD = "completion_threshold"


@dataclass(frozen=True, slots=True)
class Achievement:
    """
    A catalog entry.

    Attributes:
        id: Unique achievement id
        title: Display title
        description: What the player must do
        icon: Emoji shown next to the title
        reward_packs: Packs added to inventory when unlocked
        rule: Which rule unlocks it
        department: Target department for DEPARTMENT_COMPLETE
        rarity: Target rarity for RARITY_HUNT
        threshold: Owned/roster ratio for COMPLETION_THRESHOLD
    """

    id: str
    title: str
    description: str
    icon: str
    reward_packs: int
    rule: AchievementRule
    department: Department | None = None
    rarity: Rarity | None = None
    threshold: float = 0.0


def _department_achievement(
    achievement_id: str, title: str, department: Department, icon: str
) -> Achievement:
    return Achievement(
        id=achievement_id,
        title=title,
        description=f"Collect every {department.value} card.",
        icon=icon,
        reward_packs=2,
        rule=AchievementRule.DEPARTMENT_COMPLETE,
        department=department,
    )


ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement(
        id="first_step",
        title="Welcome Aboard",
        description="Open your first card pack.",
        icon="👋",
        reward_packs=1,
        rule=AchievementRule.FIRST_COPY,
    ),
    _department_achievement("direction_complete", "Born Leader", Department.DIRECTION, "👔"),
    _department_achievement("sales_complete", "Sales Wolf", Department.SALES, "💼"),
    _department_achievement("marketing_complete", "Creative Genius", Department.MARKETING, "🎨"),
    _department_achievement("hr_complete", "Talent Manager", Department.HR, "🤝"),
    _department_achievement("finance_complete", "Master of Numbers", Department.FINANCE, "💰"),
    _department_achievement("ops_complete", "Process Engineer", Department.OPERATIONS, "⚙️"),
    _department_achievement("it_complete", "Ethical Hacker", Department.IT, "💻"),
    _department_achievement("logistics_complete", "Route Strategist", Department.LOGISTICS, "🚚"),
    Achievement(
        id="legend_hunter",
        title="Living Legend",
        description="Find a Legendary card.",
        icon="✨",
        reward_packs=3,
        rule=AchievementRule.RARITY_HUNT,
        rarity=Rarity.LEGENDARY,
    ),
    Achievement(
        id="halfway_there",
        title="Halfway There",
        description="Collect 50% of the unique cards.",
        icon="📈",
        reward_packs=1,
        rule=AchievementRule.COMPLETION_THRESHOLD,
        threshold=0.5,
    ),
)

ACHIEVEMENTS_BY_ID: dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}
