"""Chat-model factory shared by the evidence analyzer and the assistant.

Provider selection mirrors the rest of the settings: ``LLM_PROVIDER=ollama``
(default) or ``LLM_PROVIDER=openai``.  Provider packages are imported lazily
so importing :mod:`solaris` never requires both.
"""

from __future__ import annotations

from typing import Any

from solaris.config import settings


def get_chat_model(json_mode: bool = False, temperature: float | None = None) -> Any:
    """Return a configured LangChain chat model based on ``settings``.

    Args:
        json_mode: Ask the provider to constrain output to a JSON object.
            Used by the analyzer; the assistant replies in free text.
        temperature: Override ``settings.analyzer_temperature``.
    """
    temp = settings.analyzer_temperature if temperature is None else temperature

    if settings.llm_provider == "openai":
        from langchain_openai import ChatOpenAI

        kwargs: dict[str, Any] = {}
        if json_mode:
            kwargs["model_kwargs"] = {"response_format": {"type": "json_object"}}
        return ChatOpenAI(model=settings.openai_chat_model, temperature=temp, **kwargs)

    from langchain_ollama import ChatOllama

    return ChatOllama(
        model=settings.ollama_chat_model,
        base_url=settings.ollama_base_url,
        temperature=temp,
        format="json" if json_mode else None,
    )


def message_text(message: Any) -> str:
    """Flatten a LangChain message's ``content`` into plain text."""
    content = message.content if hasattr(message, "content") else message
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return str(content)
