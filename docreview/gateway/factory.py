from docreview.config.settings import Settings
from docreview.gateway.client_base import BaseGenerationClient
from docreview.gateway.example_client_adapter import ExampleClientAdapter
from docreview.gateway.gateway import AIGateway
from docreview.gateway.gemini_client_adapter import GeminiClientAdapter
from docreview.retry.backoff import RetryController, SleepFn


class GatewayFactory:
    """Creates the configured AI gateway."""

    PROVIDERS = ("example", "gemini")

    @classmethod
    def create(cls, settings: Settings, sleep: SleepFn | None = None) -> AIGateway:
        """Create a gateway from application settings."""
        return AIGateway(
            client=cls.create_client(settings),
            retry=RetryController.from_settings(settings, sleep=sleep),
            model=settings.gemini_model_name,
            speech_model=settings.gemini_tts_model_name,
            voice=settings.gemini_tts_voice,
        )

    @classmethod
    def create_client(cls, settings: Settings) -> BaseGenerationClient:
        provider = settings.generation_provider.lower()
        if provider == "example":
            return ExampleClientAdapter()
        if provider == "gemini":
            if not settings.gemini_api_key:
                raise ValueError("gemini_api_key is required for generation_provider=gemini")
            return GeminiClientAdapter(
                api_key=settings.gemini_api_key,
                base_url=settings.gemini_base_url,
                timeout_seconds=settings.gemini_timeout_seconds,
            )
        raise ValueError(
            f"Unknown generation provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
