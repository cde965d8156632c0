"""
LLM access for note drafting and flashcard generation.

Two backends, tried in order:
  1. Ollama  (<ollama_url>/api/chat) when the configured model id is pulled
  2. GGUF    (llama-cpp-python, optional `local` extra) from llm_model_path

Model id and path are read from the settings table first, then config.

    note = await chat_text(system_prompt, user_prompt)
    data = await chat_json(system_prompt, user_prompt)
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from clinrecall.config import settings

logger = logging.getLogger(__name__)

GGUF_CONTEXT_TOKENS = 4096

# Loaded GGUF model, keyed by the path it was loaded from
_gguf_model: Any | None = None
_gguf_path: str | None = None


class LLMUnavailableError(Exception):
    """No Ollama model and no usable GGUF file."""


async def _configured(key: str, default: str) -> str:
    from clinrecall.db.sqlite import get_db, get_setting

    value = ""
    async for db in get_db():
        value = (await get_setting(db, key)) or ""
    return value or default


async def _resolve_ollama_model() -> str | None:
    """Configured model id if Ollama serves it (exact tag, else any tag of
    the same name). None when Ollama is down or lacks the model."""
    try:
        wanted = await _configured("llm_model_id", settings.llm_model_id)
        if not wanted:
            return None

        async with httpx.AsyncClient() as client:
            res = await client.get(f"{settings.ollama_url}/api/tags", timeout=1.5)
        if res.status_code != 200:
            return None
        available = {m["name"] for m in res.json().get("models", [])}
    except Exception as e:
        logger.debug("Ollama not reachable: %s", e)
        return None

    if wanted in available:
        return wanted
    base = wanted.split(":")[0]
    return next((name for name in sorted(available) if name.split(":")[0] == base), None)


async def _ollama_chat(
    model: str, messages: list[dict[str, str]], max_tokens: int, json_mode: bool
) -> str:
    payload: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "stream": False,
        "options": {"num_predict": max_tokens},
    }
    if json_mode:
        payload["format"] = "json"
    async with httpx.AsyncClient() as client:
        res = await client.post(
            f"{settings.ollama_url}/api/chat",
            json=payload,
            timeout=settings.llm_timeout_seconds,
        )
        res.raise_for_status()
        return res.json()["message"]["content"]


def _get_llama_singleton(model_path: str) -> Any:
    """Load (or reuse) the GGUF model at model_path."""
    global _gguf_model, _gguf_path
    if _gguf_model is not None and _gguf_path == model_path:
        return _gguf_model
    try:
        from llama_cpp import Llama  # type: ignore[import]

        _gguf_model = Llama(
            model_path=model_path,
            n_ctx=GGUF_CONTEXT_TOKENS,
            n_threads=4,
            verbose=False,
        )
    except Exception as e:
        _gguf_model, _gguf_path = None, None
        raise LLMUnavailableError(f"Could not load GGUF model {model_path}: {e}") from e
    _gguf_path = model_path
    logger.info("Loaded GGUF model %s", model_path)
    return _gguf_model


async def _gguf_chat(
    model_path: str, messages: list[dict[str, str]], max_tokens: int, json_mode: bool
) -> str:
    def run() -> str:
        kwargs: dict[str, Any] = {"messages": messages, "max_tokens": max_tokens}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        completion = _get_llama_singleton(model_path).create_chat_completion(**kwargs)
        return completion["choices"][0]["message"]["content"]

    return await asyncio.to_thread(run)


async def _chat(
    system_prompt: str,
    user_prompt: str,
    max_tokens: int,
    json_mode: bool,
) -> str:
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]

    model = await _resolve_ollama_model()
    if model:
        try:
            return await _ollama_chat(model, messages, max_tokens, json_mode)
        except Exception as e:
            logger.warning("Ollama chat with %s failed (%s), falling back to GGUF", model, e)

    model_path = await _configured("llm_model_path", settings.llm_model_path)
    if not model_path:
        raise LLMUnavailableError(
            "No LLM configured: set llm_model_id for Ollama or llm_model_path for a GGUF file"
        )
    return await _gguf_chat(model_path, messages, max_tokens, json_mode)


def _strip_code_fences(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


async def chat_json(
    system_prompt: str,
    user_prompt: str,
    max_tokens: int = 1024,
) -> Any:
    """Chat in JSON mode and return the decoded reply.

    LLMUnavailableError and json.JSONDecodeError propagate.
    """
    raw = await _chat(system_prompt, user_prompt, max_tokens, json_mode=True)
    return json.loads(_strip_code_fences(raw))


async def chat_text(
    system_prompt: str,
    user_prompt: str,
    max_tokens: int = 2048,
) -> str:
    raw = await _chat(system_prompt, user_prompt, max_tokens, json_mode=False)
    return raw.strip()
