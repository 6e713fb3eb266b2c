from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    DEFAULT_CURRENCY: str = "MYR"
    LOG_LEVEL: str = "INFO"

    # Language model used by the chat assistant
    ANTHROPIC_API_KEY: str = ""
    AI_MODEL: str = "claude-sonnet-4-20250514"
    AI_MAX_TOKENS: int = 1024

    # Query gateway limits
    AI_QUERY_TIMEOUT_MS: int = 5000
    AI_LIST_LIMIT: int = 100
    AI_GROUP_LIMIT: int = 50

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create a single instance of the settings to use everywhere
settings = Settings()
