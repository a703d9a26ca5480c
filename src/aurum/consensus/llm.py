"""LLM model factory for the prediction providers.

Supports:
- OpenAI (GPT)
- Anthropic (Claude)
- OpenAI-compatible APIs (Gemini, DeepSeek)
"""

from pydantic import SecretStr
from pydantic_ai.models import Model
from pydantic_ai.models.anthropic import AnthropicModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.anthropic import AnthropicProvider
from pydantic_ai.providers.openai import OpenAIProvider

from aurum.config import Settings
from aurum.core.exceptions import UnknownProviderError
from aurum.core.logging import get_logger

logger = get_logger(__name__)

PROVIDER_NAMES = ("openai", "claude", "gemini", "deepseek", "deepseek_r1")


def _secret(value: SecretStr | None) -> str | None:
    return value.get_secret_value() if value else None


def provider_api_key(name: str, settings: Settings) -> str | None:
    """API key configured for a provider, or None when it is not set up."""
    keys = {
        "openai": settings.openai_api_key,
        "claude": settings.anthropic_api_key,
        "gemini": settings.gemini_api_key,
        "deepseek": settings.deepseek_api_key,
        "deepseek_r1": settings.deepseek_api_key,
    }
    if name not in keys:
        raise UnknownProviderError(name, list(PROVIDER_NAMES))
    return _secret(keys[name])


def provider_model_name(name: str, settings: Settings) -> str:
    names = {
        "openai": settings.openai_model,
        "claude": settings.anthropic_model,
        "gemini": settings.gemini_model,
        "deepseek": settings.deepseek_model,
        "deepseek_r1": settings.deepseek_reasoner_model,
    }
    if name not in names:
        raise UnknownProviderError(name, list(PROVIDER_NAMES))
    return names[name]


def create_model(name: str, settings: Settings) -> Model:
    """Create a PydanticAI model for a named prediction provider.

    Args:
        name: One of PROVIDER_NAMES
        settings: Application settings holding keys, model names and base URLs

    Returns:
        AnthropicModel for Claude, OpenAIChatModel for everything else
    """
    api_key = provider_api_key(name, settings)
    model_name = provider_model_name(name, settings)

    if name == "claude":
        logger.debug("Using Anthropic model", provider=name, model=model_name)
        return AnthropicModel(model_name, provider=AnthropicProvider(api_key=api_key))

    if name == "gemini":
        base_url: str | None = settings.gemini_base_url
    elif name in ("deepseek", "deepseek_r1"):
        base_url = settings.deepseek_base_url
    else:
        base_url = None

    if base_url:
        provider = OpenAIProvider(base_url=base_url, api_key=api_key)
        logger.debug(
            "Using OpenAI-compatible model",
            provider=name,
            model=model_name,
            base_url=base_url,
        )
    else:
        provider = OpenAIProvider(api_key=api_key)
        logger.debug("Using OpenAI model", provider=name, model=model_name)

    return OpenAIChatModel(model_name, provider=provider)
