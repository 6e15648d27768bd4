from corplegends.models.achievement import (
    ACHIEVEMENTS,
    ACHIEVEMENTS_BY_ID,
    Achievement,
    AchievementRule,
)
from corplegends.models.card import Card, Department, Rarity
from corplegends.models.collection_state import CollectionState, StateInvariantError
from corplegends.models.failure import (
    AlreadyRegisteredError,
    ApiResponse,
    CardNotFoundError,
    FailureDetail,
    FailureKind,
    IdentityMismatchError,
    InvalidSelectionError,
    KnownError,
    NotEligibleError,
    NothingToGrantError,
    NotRegisteredError,
    OutcomeType,
    RosterUnavailableError,
    StorageFailureError,
    create_known_failure,
    create_unknown_failure,
    finalize_response,
    is_finalized,
)
from corplegends.models.trade_offer import SAMPLE_MARKET_OFFERS, TradeOffer

__all__ = [
    "ACHIEVEMENTS",
    "ACHIEVEMENTS_BY_ID",
    "Achievement",
    "AchievementRule",
    "AlreadyRegisteredError",
    "ApiResponse",
    "Card",
    "CardNotFoundError",
    "CollectionState",
    "Department",
    "FailureDetail",
    "FailureKind",
    "IdentityMismatchError",
    "InvalidSelectionError",
    "KnownError",
    "NotEligibleError",
    "NotRegisteredError",
    "NothingToGrantError",
    "OutcomeType",
    "Rarity",
    "RosterUnavailableError",
    "SAMPLE_MARKET_OFFERS",
    "StateInvariantError",
    "StorageFailureError",
    "TradeOffer",
    "create_known_failure",
    "create_unknown_failure",
    "finalize_response",
    "is_finalized",
]
