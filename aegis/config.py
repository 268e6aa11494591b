from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Gemini: GEMINI_API_KEYS is a comma-separated list of backup keys,
    # tried after GEMINI_API_KEY in rotation order.
    GEMINI_API_KEY: str = ""
    GEMINI_API_KEYS: str = ""
    GEMINI_MODEL: str = "gemini-3-pro-preview"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT_SECONDS: float = 180.0
    GEMINI_TEMPERATURE: float = 0.2

    # Retry behaviour
    QUOTA_BACKOFF_SECONDS: float = 2.0
    REQUEST_DEADLINE_SECONDS: Optional[float] = None  # None = no deadline

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    def credentials(self) -> list[str]:
        """All configured keys in rotation order, blanks and duplicates dropped."""
        raw = [self.GEMINI_API_KEY] + self.GEMINI_API_KEYS.split(",")
        keys = []
        for key in raw:
            key = key.strip()
            if key and key not in keys:
                keys.append(key)
        return keys


settings = Settings()
