"""
Chat model construction for the authorised arena models.

Arena model names (the ids users pick, e.g. "claude-sonnet-4.5") map to
provider model ids through MODEL_ALIASES. Each provider has one builder
returning a LangChain chat model:

    anthropic  ChatAnthropic
    openai     ChatOpenAI
    google     ChatGoogleGenerativeAI
    xai        ChatOpenAI against the xAI endpoint (XAI_API_KEY)
    deepseek   ChatOpenAI against the DeepSeek endpoint (DEEPSEEK_API_KEY)

Provider SDK imports happen inside the builders so that importing the
arena never requires every provider package.
"""

import os
from typing import Any, Callable, Dict, Optional


BaseChatModel = Any  # langchain_core.language_models.chat_models.BaseChatModel

XAI_BASE_URL = "https://api.x.ai/v1"
DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
DEFAULT_TIMEOUT = 60.0

# Arena model names -> provider model ids
MODEL_ALIASES = {
    "gpt-5-mini": "gpt-5-mini",
    "gpt-4.1-mini": "gpt-4.1-mini",
    "gemini-2.5-flash": "gemini-2.5-flash",
    "gemini-3-pro-preview": "gemini-3-pro-preview",
    "claude-3.7-sonnet": "claude-3-7-sonnet-latest",
    "claude-sonnet-4.5": "claude-sonnet-4-5",
    "claude-haiku-4.5": "claude-haiku-4-5",
    "grok-code-fast-1": "grok-code-fast-1",
    "grok-4-fast-reasoning": "grok-4-fast-reasoning",
    "deepseek-v3.2": "deepseek-chat",
}

# Substring of the provider model id -> provider name; first match wins
_PROVIDER_MARKERS = (
    ("claude", "anthropic"),
    ("gemini", "google"),
    ("grok", "xai"),
    ("deepseek", "deepseek"),
    ("gpt", "openai"),
    ("o1", "openai"),
)


def resolve_model_alias(model_name: str) -> str:
    """Provider model id for an arena name. Unknown names pass through."""
    return MODEL_ALIASES.get(model_name.lower(), model_name)


def get_provider(model_name: str) -> str:
    """Provider name for a model or alias, "unknown" if none matches."""
    model_lower = resolve_model_alias(model_name).lower()
    for marker, provider in _PROVIDER_MARKERS:
        if marker in model_lower:
            return provider
    return "unknown"


def _anthropic(model: str, settings: Dict[str, Any]) -> BaseChatModel:
    from langchain_anthropic import ChatAnthropic

    return ChatAnthropic(
        model=model,
        temperature=settings["temperature"],
        max_tokens=settings["max_tokens"],
        timeout=settings["timeout"],
    )


def _openai_compatible(
    base_url: Optional[str] = None,
    api_key_env: Optional[str] = None,
) -> Callable[[str, Dict[str, Any]], BaseChatModel]:
    def build(model: str, settings: Dict[str, Any]) -> BaseChatModel:
        from langchain_openai import ChatOpenAI

        endpoint: Dict[str, Any] = {}
        if base_url:
            endpoint["base_url"] = base_url
        if api_key_env and os.environ.get(api_key_env):
            endpoint["api_key"] = os.environ[api_key_env]
        return ChatOpenAI(
            model=model,
            temperature=settings["temperature"],
            max_tokens=settings["max_tokens"],
            timeout=settings["timeout"],
            **endpoint,
        )
    return build


def _google(model: str, settings: Dict[str, Any]) -> BaseChatModel:
    from langchain_google_genai import ChatGoogleGenerativeAI

    return ChatGoogleGenerativeAI(
        model=model,
        temperature=settings["temperature"],
        max_output_tokens=settings["max_tokens"],
        timeout=settings["timeout"],
    )


_BUILDERS: Dict[str, Callable[[str, Dict[str, Any]], BaseChatModel]] = {
    "anthropic": _anthropic,
    "openai": _openai_compatible(),
    "google": _google,
    "xai": _openai_compatible(XAI_BASE_URL, "XAI_API_KEY"),
    "deepseek": _openai_compatible(DEEPSEEK_BASE_URL, "DEEPSEEK_API_KEY"),
}


def get_llm_for_model(
    model_name: str,
    config: Optional[Dict[str, Any]] = None,
) -> BaseChatModel:
    """
    Build the chat model behind an arena model name or provider model id.

    Args:
        model_name: Arena alias or provider model id
        config: temperature, max_tokens and timeout (LLMConfig fields);
            missing keys fall back to the defaults above

    Raises:
        ValueError: If no provider matches the model
    """
    model = resolve_model_alias(model_name)
    provider = get_provider(model)
    if provider not in _BUILDERS:
        raise ValueError(
            f"Cannot determine provider for model '{model_name}'. "
            f"Supported: {', '.join(sorted(_BUILDERS))}"
        )

    config = config or {}
    settings = {
        "temperature": config.get("temperature", DEFAULT_TEMPERATURE),
        "max_tokens": config.get("max_tokens", DEFAULT_MAX_TOKENS),
        "timeout": config.get("timeout", DEFAULT_TIMEOUT),
    }
    return _BUILDERS[provider](model, settings)
