from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

# Get the repository root directory (parent of mandalart directory)
REPO_ROOT = Path(__file__).parent.parent.absolute()

class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=REPO_ROOT / ".env", extra="ignore")

    # API settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = True

    # Version and environment
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Storage settings
    STORAGE_TYPE: str = "memory"  # only the in-memory store ships with the core

    # Sessions kept subscribed at once by the HTTP layer
    MAX_OPEN_PROJECTS: int = 32

    # Actor defaults
    DEFAULT_USER_NAME: str = "Anonymous"

settings = Settings()
