"""Google Gemini provider for SiteCraft."""
import logging
import os
from typing import Any, Dict, Generator, List, Optional

import google.generativeai as genai

from src.providers.base import GenerationProvider
from src.sitecraft.services.user_settings_manager import load_user_settings


logger = logging.getLogger(__name__)


class GeminiProvider(GenerationProvider):
    """
    Provider for Google Gemini models.

    Environment variables take precedence over user_settings.json:
    GEMINI_API_KEY, then GOOGLE_API_KEY, then api_keys.google.
    """

    MODELS = [
        "gemini-2.5-pro",
        "gemini-2.5-flash",
        "gemini-2.0-flash",
        "gemini-1.5-pro",
    ]

    def __init__(self, api_key: Optional[str] = None) -> None:
        """
        Initialize the provider.

        Args:
            api_key: Explicit API key; when omitted it is looked up in the environment and settings.
        """
        self.api_key = api_key or self._load_api_key()
        self.client = None
        if self.api_key:
            genai.configure(api_key=self.api_key)
            self.client = genai
            logger.info("GeminiProvider initialized.")
        else:
            logger.warning(
                "GeminiProvider initialized without API key. "
                "Set GEMINI_API_KEY or GOOGLE_API_KEY environment variable, "
                "or configure api_keys.google in user_settings.json"
            )

    @property
    def provider_name(self) -> str:
        return "Google"

    def _load_api_key(self) -> Optional[str]:
        for variable in ("GEMINI_API_KEY", "GOOGLE_API_KEY"):
            api_key = os.getenv(variable)
            if api_key and api_key.strip():
                logger.info("Found API key in %s environment variable", variable)
                return api_key.strip()

        logger.debug("No API key in environment, checking user_settings.json...")
        api_keys = load_user_settings().get("api_keys", {})
        api_key = api_keys.get("google") or api_keys.get("gemini")
        if isinstance(api_key, str) and api_key.strip():
            logger.info("Found API key in user_settings.json")
            return api_key.strip()
        return None

    def get_available_models(self) -> List[str]:
        if not self.client:
            logger.warning("Cannot list models: Gemini client not initialized")
            return []
        return list(self.MODELS)

    def stream_generation(
        self,
        model_name: str,
        system_instruction: str,
        prompt: str,
        config: Dict[str, Any],
    ) -> Generator[str, None, None]:
        """
        Stream a response from Gemini.

        Raises:
            RuntimeError: If the client is not initialized.
        """
        if not self.client:
            raise RuntimeError("Gemini client not initialized. Check API key configuration.")

        generation_config = {
            "temperature": config.get("temperature", 0.2),
            "top_p": config.get("top_p", 0.95),
            "max_output_tokens": config.get("max_tokens", 8192),
        }
        model = self.client.GenerativeModel(
            model_name=model_name,
            generation_config=generation_config,
            system_instruction=system_instruction,
        )
        try:
            response = model.generate_content(prompt, stream=True)
            for chunk in response:
                if hasattr(chunk, "text") and chunk.text:
                    yield chunk.text
        except Exception as exc:
            logger.error("Gemini streaming failed for model '%s': %s", model_name, exc)
            raise
