from corplegends.db.database import get_session, init_db
from corplegends.db.operations import (
    CARD_OVERRIDES,
    GLOBAL_ASSETS,
    ROSTER_CACHE,
    TRADE_OFFERS,
    USER_STATE,
    delete_blob,
    get_blob,
    list_blobs,
    set_blob,
)

__all__ = [
    "CARD_OVERRIDES",
    "GLOBAL_ASSETS",
    "ROSTER_CACHE",
    "TRADE_OFFERS",
    "USER_STATE",
    "delete_blob",
    "get_blob",
    "get_session",
    "init_db",
    "list_blobs",
    "set_blob",
]
