import logging

import requests

from ..core.config import settings

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class ProviderError(RuntimeError):
    """The completion provider is misconfigured or answered with an unexpected payload."""


def ollama_generate(prompt: str) -> str:
    r = requests.post(
        f"{settings.OLLAMA_HOST}/api/generate",
        json={"model": settings.OLLAMA_MODEL, "prompt": prompt, "stream": False},
        timeout=settings.LLM_TIMEOUT_S,
    )
    r.raise_for_status()
    return r.json().get("response", "")


def openai_generate(prompt: str) -> str:
    r = requests.post(
        f"{settings.OPENAI_BASE_URL}/chat/completions",
        headers={"Authorization": f"Bearer {settings.OPENAI_API_KEY}"},
        json={
            "model": settings.OPENAI_MODEL,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.2,
        },
        timeout=settings.LLM_TIMEOUT_S,
    )
    r.raise_for_status()
    try:
        return r.json()["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError) as e:
        raise ProviderError(f"unexpected OpenAI payload: {e!r}") from e


def gemini_generate(prompt: str) -> str:
    r = requests.post(
        GEMINI_URL.format(model=settings.GEMINI_MODEL),
        params={"key": settings.GEMINI_API_KEY},
        json={"contents": [{"parts": [{"text": prompt}]}]},
        timeout=settings.LLM_TIMEOUT_S,
    )
    r.raise_for_status()
    try:
        parts = r.json()["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as e:
        raise ProviderError(f"unexpected Gemini payload: {e!r}") from e
    return "".join(p.get("text", "") for p in parts)


PROVIDERS = {
    "ollama": ollama_generate,
    "openai": openai_generate,
    "gemini": gemini_generate,
}


def generate(prompt: str) -> str:
    """One blocking text-completion call to the configured provider."""
    fn = PROVIDERS.get(settings.LLM_PROVIDER.lower())
    if fn is None:
        raise ProviderError(f"unknown LLM_PROVIDER {settings.LLM_PROVIDER!r}")
    logger.debug("completion via %s (%d prompt chars)", settings.LLM_PROVIDER, len(prompt))
    return fn(prompt)
