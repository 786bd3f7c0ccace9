from typing import ClassVar

from renewal_worker.config.settings import Settings
from renewal_worker.extraction.client_base import BaseExtractionClient
from renewal_worker.extraction.openai_client_adapter import OpenAIClientAdapter


class ExtractionClientFactory:
    """Creates the configured extraction client adapter."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "gemini": "https://generativelanguage.googleapis.com/v1beta/openai/",
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseExtractionClient:
        """Create a configured extraction client from application settings."""
        provider = settings.extraction_provider.lower()
        return OpenAIClientAdapter(
            api_key=settings.extraction_api_key,
            timeout_seconds=max(
                settings.pdf_extraction_timeout_seconds,
                settings.receipt_extraction_timeout_seconds,
            ),
            base_url=cls._resolve_base_url(provider, settings),
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        override = settings.extraction_base_url.strip()
        if provider == "openai":
            return override or None
        if provider == "openai_compatible":
            if not override:
                raise ValueError(
                    "extraction_base_url is required for "
                    "extraction_provider=openai_compatible"
                )
            return override
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return override or default_base_url
        supported = ["openai", "openai_compatible", *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS)]
        raise ValueError(
            f"Unknown extraction provider '{provider}'. Choose from: {supported}"
        )
