"""Registry of chat models the assistants can be bound to."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ModelCapabilities(BaseModel):
    vision: bool = False
    function_calling: bool = False
    streaming: bool = True


class LLMModel(BaseModel):
    """A chat model and what it supports."""
    id: str = Field(..., description="Provider-qualified model ID")
    name: str
    provider: str
    context_window: int
    capabilities: ModelCapabilities


AVAILABLE_MODELS: List[LLMModel] = [
    LLMModel(
        id="xiaomi/mimo-v2-flash", name="MiMo V2 Flash", provider="Xiaomi",
        context_window=32768,
        capabilities=ModelCapabilities(vision=False, function_calling=False),
    ),
    LLMModel(
        id="openai/gpt-5.2", name="GPT-5.2", provider="OpenAI",
        context_window=256000,
        capabilities=ModelCapabilities(vision=True, function_calling=True),
    ),
    LLMModel(
        id="openai/gpt-5.2-mini", name="GPT-5.2 Mini", provider="OpenAI",
        context_window=256000,
        capabilities=ModelCapabilities(vision=True, function_calling=True),
    ),
    LLMModel(
        id="openai/o3-mini", name="O3 Mini", provider="OpenAI",
        context_window=200000,
        capabilities=ModelCapabilities(vision=False, function_calling=True),
    ),
    LLMModel(
        id="anthropic/claude-sonnet-4.5", name="Claude Sonnet 4.5", provider="Anthropic",
        context_window=200000,
        capabilities=ModelCapabilities(vision=True, function_calling=True),
    ),
    LLMModel(
        id="anthropic/claude-haiku-4.5", name="Claude Haiku 4.5", provider="Anthropic",
        context_window=200000,
        capabilities=ModelCapabilities(vision=True, function_calling=True),
    ),
    LLMModel(
        id="google/gemini-3-pro", name="Gemini 3 Pro", provider="Google",
        context_window=2000000,
        capabilities=ModelCapabilities(vision=True, function_calling=True),
    ),
    LLMModel(
        id="google/gemini-3-flash", name="Gemini 3 Flash", provider="Google",
        context_window=1000000,
        capabilities=ModelCapabilities(vision=True, function_calling=True),
    ),
    LLMModel(
        id="deepseek/deepseek-v3", name="DeepSeek V3", provider="DeepSeek",
        context_window=131072,
        capabilities=ModelCapabilities(vision=False, function_calling=True),
    ),
    LLMModel(
        id="deepseek/deepseek-r1", name="DeepSeek R1", provider="DeepSeek",
        context_window=65536,
        capabilities=ModelCapabilities(vision=False, function_calling=False),
    ),
    LLMModel(
        id="qwen/qwen-3-72b", name="Qwen 3 72B", provider="Alibaba",
        context_window=131072,
        capabilities=ModelCapabilities(vision=False, function_calling=True),
    ),
]

DEFAULT_MODEL_ID = "xiaomi/mimo-v2-flash"

_MODELS_BY_ID = {model.id: model for model in AVAILABLE_MODELS}


def get_model_by_id(model_id: str) -> Optional[LLMModel]:
    return _MODELS_BY_ID.get(model_id)


def supports_function_calling(model_id: str) -> bool:
    model = get_model_by_id(model_id)
    return bool(model and model.capabilities.function_calling)
