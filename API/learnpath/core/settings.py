from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    llm_provider: str = "gemini"
    llm_model: str = "gemini-2.5-flash"
    gemini_api_key: str = ""
    gemini_api_url: str = ""
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen2.5:3b"
    llm_timeout_seconds: float = 30.0
    llm_max_retries: int = 3
    llm_retry_base_delay_seconds: float = 0.5
    breaker_failure_threshold: int = 4
    breaker_recovery_timeout_seconds: float = 30.0

    nudge_abandon_threshold: int = 3
    correct_score_threshold: int = 80
    default_feedback_score: int = 75
    quick_start_seed: int | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
