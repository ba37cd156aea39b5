import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx
from langchain_ollama import ChatOllama

from agents.core.llm import LLM

logger = logging.getLogger(__name__)


class OllamaLLM(LLM):
    """
    Content provider backed by a local Ollama server.

    Narrative calls go through ChatOllama as-is; structured calls get a
    ChatOllama bound to the JSON schema (Ollama's `format`). The raw text is
    returned either way so validation stays with the caller.
    """

    def __init__(
        self,
        model: str,
        temperature: float = 0.7,
        base_url: str = "http://localhost:11434",
        timeout: Optional[float] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.base_url = base_url.rstrip("/")
        # None = wait as long as the provider takes
        self.timeout = timeout
        self._chat_llm = ChatOllama(model=model, temperature=temperature, base_url=self.base_url)

    def _structured_llm(self, schema: Dict[str, Any]) -> ChatOllama:
        return ChatOllama(
            model=self.model,
            temperature=self.temperature,
            base_url=self.base_url,
            format=schema,
        )

    async def _ainvoke(self, chat: ChatOllama, prompt: str) -> str:
        start_time = time.time()
        input_tokens = len(prompt) // 4  # Rough estimate
        logger.debug("LLM call starting: model=%s ~%d input tokens", self.model, input_tokens)
        call = chat.ainvoke(prompt)
        try:
            if self.timeout is None:
                message = await call
            else:
                message = await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            elapsed = time.time() - start_time
            logger.error("LLM call timed out after %.2fs (timeout: %ss)", elapsed, self.timeout)
            raise TimeoutError(f"LLM call timed out after {self.timeout}s") from None
        content = getattr(message, "content", message)
        text = content if isinstance(content, str) else str(content or "")
        elapsed = time.time() - start_time
        logger.info("LLM call completed in %.2fs (~%d in, ~%d out)", elapsed, input_tokens, len(text) // 4)
        if elapsed > 60:
            logger.warning("LLM call took %.2fs - consider a smaller model than %s", elapsed, self.model)
        return text

    async def agenerate(self, prompt: str) -> str:
        return await self._ainvoke(self._chat_llm, prompt)

    async def agenerate_json(self, prompt: str, schema: Dict[str, Any]) -> str:
        return await self._ainvoke(self._structured_llm(schema), prompt)

    async def is_available(self) -> bool:
        """Probe the Ollama tags endpoint; False on any connection problem."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self.base_url}/api/tags")
        except httpx.HTTPError as e:
            logger.warning("Ollama connection check failed: %s. Is Ollama running?", e)
            return False
        if response.status_code != 200:
            logger.warning("Ollama API returned status %s", response.status_code)
            return False
        return True
