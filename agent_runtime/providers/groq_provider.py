"""
Groq LLM provider wrapper (OpenAI-compatible API)
"""
from openai import AsyncOpenAI
from typing import Optional, Dict, Any, List
import time

from agent_runtime.config import Settings, settings as default_settings
from agent_runtime.errors import InternalError, ValidationError
from agent_runtime.logs import get_logger

logger = get_logger(__name__)


class GroqProvider:
    """Groq API wrapper using the OpenAI SDK"""

    GPT_OSS_120B = "openai/gpt-oss-120b"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        base_url: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize Groq client via OpenAI SDK"""
        settings = settings or default_settings
        self.api_key = api_key or settings.GROQ_API_KEY
        if not self.api_key:
            raise ValidationError("Groq API key not configured")

        self.model = model or settings.GROQ_MODEL or self.GPT_OSS_120B
        self.embedding_model = embedding_model or settings.GROQ_EMBEDDING_MODEL
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=base_url or settings.GROQ_BASE_URL,
        )

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Generate content using Groq models

        Returns:
            Dict with response text, tokens, latency, model used
        """
        start_time = time.time()
        model = model or self.model

        kwargs: Dict[str, Any] = {"input": prompt, "model": model, "temperature": temperature}
        if max_tokens:
            kwargs["max_output_tokens"] = max_tokens

        try:
            response = await self.client.responses.create(**kwargs)
        except Exception as e:
            raise InternalError(f"Groq API error: {e}", {"model": model}) from e

        text = response.output_text or ""
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
        if not self.embedding_model:
            raise InternalError("Groq embedding model not configured (GROQ_EMBEDDING_MODEL)")
        try:
            response = await self.client.embeddings.create(model=self.embedding_model, input=text)
        except Exception as e:
            raise InternalError(f"Groq embedding error: {e}", {"model": self.embedding_model}) from e
        return list(response.data[0].embedding)

    def _estimate_tokens(self, prompt: str, response: str) -> int:
        """
        Rough token estimation (~4 chars per token)
        """
        total_chars = len(prompt) + len(response)
        return total_chars // 4
