"""
Language model client interface

The runtime only needs text generation (for reasoning) and embeddings; any
object with these two coroutines can drive an agent.
"""
from typing import List, Optional, Protocol, runtime_checkable


@runtime_checkable
class LanguageModelClient(Protocol):

    async def generate_text(self, prompt: str, temperature: Optional[float] = None) -> str:
        ...

    async def generate_embedding(self, text: str) -> List[float]:
        ...
