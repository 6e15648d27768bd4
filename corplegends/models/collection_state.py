"""
CollectionState — the per-user aggregate root.

One instance per registered user, persisted as a whole after every accepted
mutation. Instances are frozen: every operation in the services layer builds
a new state instead of editing one in place, so a rejected operation always
leaves the caller's state exactly as it was.

INVARIANTS:
- A card id in `duplicate_counts` is always in `owned_card_ids`
- `duplicate_counts` values are always >= 1 (entries never persist at zero)
- Total owned copies of a card = 1 (if owned) + duplicate_counts[id]
- `unlocked_achievement_ids` only grows
- `packs_available` is never negative
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any


class StateInvariantError(ValueError):
    """Raised when a state violates the ownership invariants."""

    pass


@dataclass(frozen=True)
class CollectionState:
    """
    One user's album progress.

    Attributes:
        owned_card_ids: Card ids owned at least once
        duplicate_counts: Card id -> number of extra copies beyond the first
        unlocked_achievement_ids: Achievements already granted
        packs_available: Unopened reward/bonus packs
        last_pack_opened_at: When the daily pack was last consumed (UTC)
        packs_opened: Total packs opened, used by the onboarding sequence
        display_name: Name given at registration
        contact_handle: Work email given at registration
        is_registered: Registration flag
    """

    owned_card_ids: frozenset[int] = field(default_factory=frozenset)
    duplicate_counts: dict[int, int] = field(default_factory=dict)
    unlocked_achievement_ids: frozenset[str] = field(default_factory=frozenset)
    packs_available: int = 0
    last_pack_opened_at: datetime | None = None
    packs_opened: int = 0
    display_name: str = ""
    contact_handle: str = ""
    is_registered: bool = False

    def owns(self, card_id: int) -> bool:
        """Check if at least one copy of a card is owned."""
        return card_id in self.owned_card_ids

    def copies_of(self, card_id: int) -> int:
        """Total copies owned of a card (first copy plus duplicates)."""
        if card_id not in self.owned_card_ids:
            return 0
        return 1 + self.duplicate_counts.get(card_id, 0)

    def duplicates_of(self, card_id: int) -> int:
        """Duplicate copies available to spend."""
        return self.duplicate_counts.get(card_id, 0)

    def total_duplicates(self) -> int:
        """Sum of all duplicate copies."""
        return sum(self.duplicate_counts.values())

    def unique_cards(self) -> int:
        """Number of distinct cards owned."""
        return len(self.owned_card_ids)

    def total_cards(self) -> int:
        """Total copies across the whole collection."""
        return self.unique_cards() + self.total_duplicates()

    def evolve(self, **changes: Any) -> "CollectionState":
        """Return a copy with the given fields replaced and invariants checked."""
        new_state = replace(self, **changes)
        new_state.check_invariants()
        return new_state

    def check_invariants(self) -> None:
        """
        Verify the ownership invariants.

        Raises:
            StateInvariantError: If any invariant is violated
        """
        for card_id, count in self.duplicate_counts.items():
            if card_id not in self.owned_card_ids:
                raise StateInvariantError(f"Card {card_id} has duplicates but is not owned")
            if count < 1:
                raise StateInvariantError(
                    f"Card {card_id} has non-positive duplicate count {count}"
                )
        if self.packs_available < 0:
            raise StateInvariantError(f"packs_available is negative: {self.packs_available}")

    # -------------------------------------------------------------------------
    # Blob serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "owned_card_ids": sorted(self.owned_card_ids),
            # JSON object keys must be strings
            "duplicate_counts": {str(k): v for k, v in sorted(self.duplicate_counts.items())},
            "unlocked_achievement_ids": sorted(self.unlocked_achievement_ids),
            "packs_available": self.packs_available,
            "last_pack_opened_at": (
                self.last_pack_opened_at.isoformat() if self.last_pack_opened_at else None
            ),
            "packs_opened": self.packs_opened,
            "display_name": self.display_name,
            "contact_handle": self.contact_handle,
            "is_registered": self.is_registered,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CollectionState":
        """
        Rebuild a state from `to_dict` output.

        Zero or negative duplicate entries left by older blobs are dropped
        rather than rejected.
        """
        owned = frozenset(int(card_id) for card_id in data.get("owned_card_ids", []))
        duplicates = {
            int(card_id): int(count)
            for card_id, count in data.get("duplicate_counts", {}).items()
            if int(count) > 0 and int(card_id) in owned
        }
        raw_opened_at = data.get("last_pack_opened_at")

        state = cls(
            owned_card_ids=owned,
            duplicate_counts=duplicates,
            unlocked_achievement_ids=frozenset(data.get("unlocked_achievement_ids", [])),
            packs_available=max(0, int(data.get("packs_available", 0))),
            last_pack_opened_at=datetime.fromisoformat(raw_opened_at) if raw_opened_at else None,
            packs_opened=int(data.get("packs_opened", 0)),
            display_name=str(data.get("display_name", "")),
            contact_handle=str(data.get("contact_handle", "")),
            is_registered=bool(data.get("is_registered", False)),
        )
        state.check_invariants()
        return state
