"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./wizard.db"

    # OpenRouter (AI template generation)
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    SITE_URL: str = ""
    SITE_NAME: str = "Project Wizard"
    TEMPLATE_MODEL: str = "google/gemini-2.0-flash-exp:free"

    # Pricing
    TAX_REGION: str = "ontario"
    DEMOLITION_UNIT_PRICE: float = 2.50  # $/sq ft
    DEFAULT_WASTE_PERCENT: int = 10
    MAX_WASTE_PERCENT: int = 50
    DEFAULT_MARKUP_PERCENT: float = 0.0

    # Schedule
    DEFAULT_SCHEDULE_DAYS: int = 30

    # Blob storage for uploads and template snapshots
    STORAGE_ROOT: str = "./storage"

    # Maps / geocoding
    MAPS_API_KEY: str = ""
    GEOCODING_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"

    # Invitation email function
    INVITATION_EMAIL_URL: str = ""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


# Global settings instance
settings = Settings()
