"""
Google Gemini LLM provider wrapper

Models:
- gemini-2.5-flash: default reasoning model
- text-embedding-004: embeddings
"""
from google import genai
from typing import Optional, Dict, Any, List
import time

from agent_runtime.config import Settings, settings as default_settings
from agent_runtime.errors import InternalError, ValidationError
from agent_runtime.logs import get_logger

logger = get_logger(__name__)


class GeminiProvider:
    """Google Gemini API wrapper (async client)"""

    FLASH_2_5 = "gemini-2.5-flash"
    EMBEDDING_004 = "text-embedding-004"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize Gemini client"""
        settings = settings or default_settings
        self.api_key = api_key or settings.GOOGLE_API_KEY
        if not self.api_key:
            raise ValidationError("Google API key not configured")

        self.model = model or settings.GEMINI_MODEL or self.FLASH_2_5
        self.embedding_model = embedding_model or settings.GEMINI_EMBEDDING_MODEL or self.EMBEDDING_004
        self.client = genai.Client(api_key=self.api_key)

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Generate content using Gemini models

        Args:
            prompt: Input prompt
            model: Gemini model to use (default: configured model)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            Dict with response text, tokens, latency, model used
        """
        start_time = time.time()
        model = model or self.model

        config = {
            "temperature": temperature,
        }
        if max_tokens:
            config["max_output_tokens"] = max_tokens

        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            raise InternalError(f"Gemini API error: {e}", {"model": model}) from e

        text = response.text or ""
        return {
            "text": text,
            "model": model,
            "latency_ms": int((time.time() - start_time) * 1000),
            "tokens_used": self._estimate_tokens(prompt, text),
        }

    async def generate_text(self, prompt: str, temperature: Optional[float] = None) -> str:
        result = await self.generate(prompt, temperature=0.7 if temperature is None else temperature)
        logger.debug(
            f"Generated {len(result['text'])} chars with {result['model']} "
            f"in {result['latency_ms']}ms (~{result['tokens_used']} tokens)"
        )
        return result["text"]

    async def generate_embedding(self, text: str) -> List[float]:
        try:
            response = await self.client.aio.models.embed_content(
                model=self.embedding_model,
                contents=text,
            )
        except Exception as e:
            raise InternalError(f"Gemini embedding error: {e}", {"model": self.embedding_model}) from e

        if not response.embeddings:
            raise InternalError("Gemini returned no embeddings", {"model": self.embedding_model})
        return list(response.embeddings[0].values)

    def _estimate_tokens(self, prompt: str, response: str) -> int:
        """
        Rough token estimation (Gemini uses ~4 chars per token)
        """
        total_chars = len(prompt) + len(response)
        return total_chars // 4
