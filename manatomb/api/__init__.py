from manatomb.api.auth import router as auth_router
from manatomb.api.cards import commanders_router
from manatomb.api.cards import router as cards_router
from manatomb.api.decks import router as decks_router
from manatomb.api.health import router as health_router
from manatomb.api.home import router as home_router
from manatomb.api.settings import router as settings_router

__all__ = [
    "auth_router",
    "cards_router",
    "commanders_router",
    "decks_router",
    "health_router",
    "home_router",
    "settings_router",
]
