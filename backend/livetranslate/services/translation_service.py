import asyncio
import logging
import time
from typing import Dict, Optional, Protocol

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


# Display names used to build the backend instruction.
# Unknown codes are passed through verbatim.
LANGUAGE_NAMES: Dict[str, str] = {
    "es": "Spanish",
    "de": "German",
    "fr": "French",
    "it": "Italian",
    "pt": "Portuguese",
    "ja": "Japanese",
    "zh": "Chinese",
    "hi": "Hindi",
    "en": "English",
    "ko": "Korean",
    "ru": "Russian",
    "ar": "Arabic",
    "nl": "Dutch",
    "el": "Greek",
}

MOCK_PHRASEBOOK: Dict[str, str] = {
    "hello": "hola",
    "how are you": "cómo estás",
    "good morning": "buenos días",
    "thank you": "gracias",
    "goodbye": "adiós",
}


def resolve_language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


class TranslationServiceError(Exception):
    """Represents any failure of the translation backend."""


class TranslationBackend(Protocol):
    async def translate_text(self, text: str, target_language: str) -> str: ...

    async def close(self) -> None: ...


class TranslationService:
    """Translation backend using the OpenAI chat completions API.

    The target language arrives as a display name (see resolve_language_name).
    Any transport error, HTTP error status, timeout or malformed response is
    raised as TranslationServiceError.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        endpoint: str = "https://api.openai.com/v1/chat/completions",
        temperature: float = 0.2,
        timeout_ms: int = 10000,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            logger.warning("OPENAI_API_KEY is not set - translation requests will fail")
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint
        self.temperature = temperature
        self.timeout_ms = timeout_ms
        self._client = client or httpx.AsyncClient(timeout=timeout_ms / 1000.0)

    async def translate_text(self, text: str, target_language: str) -> str:
        """Translate text into the language named by target_language.

        Args:
            text: Text to translate, already validated as non-blank
            target_language: Display name such as "Spanish", or a raw code

        Returns:
            Translated text with surrounding whitespace removed
        """
        timeout_s = self.timeout_ms / 1000.0
        start_time = time.perf_counter()

        try:
            result = await asyncio.wait_for(
                self._translate_openai(text, target_language),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError as exc:
            logger.warning(f"Translation timeout after {timeout_s}s")
            raise TranslationServiceError(f"Translation timed out after {timeout_s}s") from exc
        except TranslationServiceError:
            raise
        except httpx.HTTPStatusError as exc:
            logger.error("Translation request failed: %s", exc.response.text)
            raise TranslationServiceError("Translation provider error") from exc
        except Exception as exc:
            logger.exception("Translation request crashed")
            raise TranslationServiceError("Translation request failed") from exc

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"OpenAI translation took {duration_ms:.1f}ms")
        return result

    async def _translate_openai(self, text: str, target_language: str) -> str:
        if not self.api_key:
            raise TranslationServiceError("OPENAI_API_KEY is not configured")

        prompt = f"Translate the text to {target_language}. Only return the translation."

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": prompt},
                {"role": "user", "content": text},
            ],
            "temperature": self.temperature,
        }

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        response = await self._client.post(self.endpoint, headers=headers, json=payload)
        response.raise_for_status()
        data = response.json()

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.error("Bad response from translation provider: %s", data)
            raise TranslationServiceError("Translation provider returned an unexpected response.")

        if not isinstance(content, str) or not content.strip():
            raise TranslationServiceError("Translation provider returned no content.")

        return content.strip()

    async def close(self) -> None:
        await self._client.aclose()


class MockTranslationService:
    """Offline backend: a small phrasebook, otherwise the reversed text.

    Simulates provider latency with delay_ms.
    """

    def __init__(self, delay_ms: int = 500):
        self.delay_ms = delay_ms

    async def translate_text(self, text: str, target_language: str) -> str:
        if self.delay_ms > 0:
            await asyncio.sleep(self.delay_ms / 1000.0)

        phrase = MOCK_PHRASEBOOK.get(text.lower().strip())
        if phrase:
            return phrase
        return f"[Translated] {text[::-1]}"

    async def close(self) -> None:
        return None


def build_translation_service(settings: Settings) -> TranslationBackend:
    if settings.translation_provider == "mock":
        logger.info("Using mock translation backend")
        return MockTranslationService(delay_ms=settings.mock_translation_delay_ms)

    logger.info(f"Using OpenAI translation backend (model={settings.openai_translation_model})")
    return TranslationService(
        api_key=settings.openai_api_key,
        model=settings.openai_translation_model,
        endpoint=settings.openai_api_url,
        temperature=settings.openai_temperature,
        timeout_ms=settings.translation_timeout_ms,
    )
