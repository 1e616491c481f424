"""
Gemini API Service

Single non-streaming calls to the Generative Language REST API.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from salesdash.config import settings

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The generative backend failed or returned no usable text."""


class GeminiClient:
    """Client for the Gemini generateContent endpoint"""

    def __init__(self, model: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.model = model or settings.GEMINI_MODEL
        self.base_url = (base_url or settings.GEMINI_API_URL).rstrip("/")
        self.timeout = timeout or settings.GEMINI_TIMEOUT_SECONDS
        self.transport = transport

    def _payload(self, prompt: str, temperature: float, max_output_tokens: Optional[int], json_output: bool) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {"temperature": temperature}
        if max_output_tokens:
            generation_config["maxOutputTokens"] = max_output_tokens
        if json_output:
            generation_config["responseMimeType"] = "application/json"
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

    async def generate(
        self,
        prompt: str,
        api_key: str,
        temperature: float = 0.2,
        max_output_tokens: Optional[int] = None,
        json_output: bool = False,
    ) -> str:
        """
        Generate text for a prompt

        Args:
            prompt: Full prompt text
            api_key: Google AI API key
            temperature: Sampling temperature
            max_output_tokens: Optional output cap
            json_output: Ask the model for an application/json response

        Returns:
            Generated text
        """
        if not api_key:
            raise GenerationError("API key do Google AI não configurada")

        url = f"{self.base_url}/models/{self.model}:generateContent"
        logger.debug("Calling Gemini %s (key %s..., prompt %d chars)", self.model, api_key[:6], len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    url,
                    headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
                    json=self._payload(prompt, temperature, max_output_tokens, json_output),
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Gemini API error %s: %s", exc.response.status_code, exc.response.text[:500])
            raise GenerationError(f"API Error: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("Gemini request failed: %s", exc)
            raise GenerationError("Erro de conexão com a IA") from exc
        except ValueError as exc:
            raise GenerationError("Resposta inválida da IA") from exc

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            logger.error("Unexpected Gemini response structure: %s", str(data)[:500])
            raise GenerationError("IA não retornou texto") from exc
        return text.strip()


# Singleton
gemini_client = GeminiClient()
