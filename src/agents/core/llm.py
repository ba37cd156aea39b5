from abc import ABC, abstractmethod
from typing import Any, Dict


class LLM(ABC):
    """
    Defines the contract for all content providers.
    One call is one request/response exchange; no retries happen here.
    """
    @abstractmethod
    async def agenerate(self, prompt: str) -> str:
        """Free-form narrative text (markdown-flavoured)."""
        raise NotImplementedError

    @abstractmethod
    async def agenerate_json(self, prompt: str, schema: Dict[str, Any]) -> str:
        """
        Text constrained by a JSON schema. The constraint is best-effort on the
        provider side; callers must validate what comes back.
        """
        raise NotImplementedError
