from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    OPENAI_API_KEY: str | None = None
    MODEL_NAME: str = "gpt-4o-mini"
    TEMPERATURE: float = 0.4
    HISTORY_WINDOW: int = 12

    LEAD_WEBHOOK_URL: str | None = None
    WEBHOOK_TIMEOUT: float = 10.0

    CALENDLY_LINK: str = "https://calendly.com/martividigital/30min"
    SCHEDULING_DOMAIN: str = "calendly.com"

    # empty = any origin
    ALLOWED_ORIGINS: str = ""
    DEFAULT_ORIGIN: str = "https://www.martiviconsulting.com"

    # widget only
    CHAT_API_BASE: str = "http://localhost:8000"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

def get_allowed_origins_list(origins: str) -> List[str]:
    return [o.strip() for o in origins.split(",") if o.strip()]
