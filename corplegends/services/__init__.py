"""
Corporate Legends services.

The collection state engine: pack generation, achievement evaluation,
duplicate trading, and the store and roster collaborators they run on.
"""

from corplegends.services.achievement_evaluator import (
    apply_unlocks,
    completion_ratio,
    department_progress,
    evaluate,
    settle_achievements,
)
from corplegends.services.album import AlbumService, PackOpening, TradeOutcome
from corplegends.services.album_store import AlbumStore, get_album_store
from corplegends.services.pack_generator import (
    DEFAULT_PACK_CONFIG,
    PackConfig,
    PackResult,
    PackSource,
    RevealedCard,
    daily_allowance_available,
    is_eligible,
    open_pack,
    select_pack_source,
)
from corplegends.services.registration import register, require_registered, verify_identity
from corplegends.services.roster_provider import (
    RosterProvider,
    build_fallback_roster,
    get_roster_provider,
)
from corplegends.services.trade_engine import (
    TradeResult,
    burn_trade,
    create_offer,
    duplicate_cards,
)

__all__ = [
    "AlbumService",
    "AlbumStore",
    "DEFAULT_PACK_CONFIG",
    "PackConfig",
    "PackOpening",
    "PackResult",
    "PackSource",
    "RevealedCard",
    "RosterProvider",
    "TradeOutcome",
    "TradeResult",
    "apply_unlocks",
    "build_fallback_roster",
    "burn_trade",
    "completion_ratio",
    "create_offer",
    "daily_allowance_available",
    "department_progress",
    "duplicate_cards",
    "evaluate",
    "get_album_store",
    "get_roster_provider",
    "is_eligible",
    "open_pack",
    "register",
    "require_registered",
    "select_pack_source",
    "settle_achievements",
    "verify_identity",
]
