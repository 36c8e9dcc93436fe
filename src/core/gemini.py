"""Gemini API client using Vertex AI."""

import logging

import vertexai
from vertexai.generative_models import GenerativeModel, Part, Content

from src.config import get_settings

from .exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


class GeminiClient:
    """Wrapper for Gemini text generation using Vertex AI."""

    _instance: "GeminiClient | None" = None
    _initialized_key: str | None = None
    _initialized: bool = False

    @property
    def project_id(self) -> str:
        """Get project ID from settings."""
        return get_settings().google_cloud_project

    def __new__(cls) -> "GeminiClient":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _ensure_initialized(self, api_key: str | None = None) -> None:
        """Initialize Vertex AI if not already done for this key."""
        if self._initialized and self._initialized_key == api_key:
            return
        settings = get_settings()
        try:
            if api_key:
                # Express mode authenticates with the key alone
                vertexai.init(api_key=api_key)
            else:
                vertexai.init(project=self.project_id or None, location=settings.vertex_region)
        except Exception as e:
            raise UpstreamServiceError(f"Vertex AI initialization failed: {e}")
        self._initialized = True
        self._initialized_key = api_key

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str | None = None,
        api_key: str | None = None,
        model_id: str | None = None,
    ) -> str:
        """
        Generate a single text response.

        Args:
            prompt: User prompt with the structured metrics
            system_prompt: System instructions for the model
            api_key: API key read from the key-value store
            model_id: Specific Gemini model to use (defaults to settings)

        Returns:
            Model's response text
        """
        self._ensure_initialized(api_key)

        model = GenerativeModel(
            model_id or get_settings().narrative_model,
            system_instruction=system_prompt or "You are a helpful analyst.",
        )
        contents = [Content(role="user", parts=[Part.from_text(prompt)])]

        try:
            response = model.generate_content(
                contents,
                generation_config={
                    "temperature": 0.4,
                    "max_output_tokens": 2048,
                },
            )
            text = response.text
        except Exception as e:
            logger.error(f"Gemini generation failed: {type(e).__name__}: {e}")
            raise UpstreamServiceError(f"Narrative generation failed: {e}")

        if not text:
            raise UpstreamServiceError("Narrative generation returned an empty response")
        return text


def get_gemini_client() -> GeminiClient:
    """Get Gemini client instance (dependency injection)."""
    return GeminiClient()
