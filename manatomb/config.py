import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Mana Tomb"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "postgresql+asyncpg://localhost:5432/manatomb"

    scryfall_api_url: str = "https://api.scryfall.com"
    catalog_user_agent: str = "ManaTomb/1.0"
    catalog_timeout_seconds: float = 5.0

    session_ttl_hours: int = 24 * 7
    session_cookie_name: str = "mt_session"
    # Set true in production behind HTTPS
    session_cookie_secure: bool = False


settings = Settings()


# =============================================================================
# INPUT LIMITS
# =============================================================================

MIN_PASSWORD_LENGTH = 8

MAX_DECK_NAME_LENGTH = 100

# Dashboard shows only the most recently touched decks
RECENT_DECKS_LIMIT = 5


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the service."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
