from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    generation_provider: str = "gemini"

    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model_name: str = "gemini-2.5-flash-preview-05-20"
    gemini_tts_model_name: str = "gemini-2.5-flash-preview-tts"
    gemini_tts_voice: str = "Kore"
    gemini_timeout_seconds: int = 30

    retry_max_retries: int = 5
    retry_initial_delay_seconds: float = 1.0

    pdf_engine: str = "pdfplumber"

    audio_backend: str = "sounddevice"
