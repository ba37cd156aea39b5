from typing import Optional

from agents.core.llm import LLM
from agents.feynman_agent.pipeline import ContentPipeline

from api.config import Settings, get_settings
from infra.llm.ollama import OllamaLLM


def build_llm(settings: Optional[Settings] = None) -> OllamaLLM:
    settings = settings or get_settings()
    return OllamaLLM(
        model=settings.ollama_model,
        temperature=settings.llm_temperature,
        base_url=settings.ollama_base_url,
        timeout=settings.llm_timeout_seconds,
    )


def build_pipeline(llm: Optional[LLM] = None) -> ContentPipeline:
    return ContentPipeline(llm=llm or build_llm())
