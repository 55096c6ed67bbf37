from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    gemini_api_key: str = ""
    quiz_model: str = "gemini-2.5-flash"
    quiz_question_count: int = 10
    quiz_time_limit_ms: int = 20000  # display only, answers are never rejected on time
    room_code_length: int = 6
    spy_min_players: int = 3
    spy_round_seconds: int = 300  # display only
    # CORS origins: set ALLOWED_ORIGINS env var for production (JSON list)
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )


settings = Settings()
