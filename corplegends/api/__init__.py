from corplegends.api.album import router as album_router
from corplegends.api.health import router as health_router
from corplegends.api.roster import router as roster_router
from corplegends.api.trade import router as trade_router

__all__ = [
    "album_router",
    "health_router",
    "roster_router",
    "trade_router",
]
