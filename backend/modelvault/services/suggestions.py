"""Tag suggestions for uploaded models.

Two strategies:
  - local: tokens pulled from the filename, always available.
  - external: ask an OpenAI-compatible chat completions endpoint for tags,
    falling back to the local heuristic only when the reply holds no usable
    tags. Transport and HTTP failures are raised, never papered over.
"""
import asyncio
import json
import logging
import re
from typing import Any, Optional

import aiohttp

from modelvault.errors import (
    ExternalSuggestionError,
    SuggestionNotConfiguredError,
    SuggestionTimeoutError,
    ValidationError,
)
from modelvault.services.tags import dedupe_tags, normalize_tags

logger = logging.getLogger(__name__)

MAX_SUGGESTED_TAGS = 8
STOPWORDS = frozenset({"v1", "v2", "v3", "final"})
STRATEGIES = ("auto", "local", "external")

_TOKEN_SPLIT = re.compile(r"[^A-Za-z0-9]+")


def local_suggest(original_name: str, extension: str) -> list[str]:
    """Derive tags from the filename, e.g. Bracket_Mount_v2.stl -> bracket, mount, stl."""
    ext = (extension or "").lower()
    stem = original_name or ""
    if ext and stem.lower().endswith(f".{ext}"):
        stem = stem[: -(len(ext) + 1)]

    tokens = []
    for token in _TOKEN_SPLIT.split(stem):
        token = token.lower()
        if len(token) <= 1 or token in STOPWORDS:
            continue
        tokens.append(token)
    if ext:
        tokens.append(ext)
    return dedupe_tags(tokens)[:MAX_SUGGESTED_TAGS]


def build_prompt(original_name: str, extension: str) -> str:
    return (
        "Suggest 5 to 8 concise tags for a 3D printable model file. "
        "Each tag must be lowercase and one or two words long. "
        f"File name: {original_name}. File type: {extension}. "
        'Respond with a JSON array of strings only, for example ["bracket", "wall mount"].'
    )


def extract_json_array(text: Any) -> list:
    """Pull a JSON array out of a reply that may wrap it in prose.

    Returns [] when nothing parseable is found; never raises.
    """
    if not text or not isinstance(text, str):
        return []
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end <= start:
        return []
    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        logger.debug("Suggestion reply was not a JSON array: %.200s", text)
        return []
    return parsed if isinstance(parsed, list) else []


def _content_text(content: Any) -> str:
    """Message content as text: a plain string or a list of typed parts."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return ""


def _reply_text(payload: Any) -> str:
    """Text of a chat-completions reply; tolerates a few common shapes.

    Always returns a string. Shapes it does not recognize yield "".
    """
    if isinstance(payload, dict):
        choices = payload.get("choices")
        if isinstance(choices, list) and choices:
            first = choices[0] if isinstance(choices[0], dict) else {}
            message = first.get("message") if isinstance(first.get("message"), dict) else {}
            return _content_text(message.get("content")) or _content_text(first.get("text"))
        for key in ("output_text", "response", "text"):
            if isinstance(payload.get(key), str):
                return payload[key]
        return ""
    if isinstance(payload, list):
        return json.dumps(payload)
    return str(payload or "")


class SuggestionClient:
    """Async HTTP client for the tag suggestion service. One call, no retries."""

    def __init__(
        self, base_url: str, model: str,
        api_key: str = "",
        timeout: float = 20.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        if not base_url or not model:
            raise SuggestionNotConfiguredError("Suggestion service URL and model must both be set")
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self._session = session

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat/completions"

    async def complete(self, prompt: str) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.2,
        }

        try:
            if self._session:
                return await self._post(self._session, headers, payload)
            async with aiohttp.ClientSession() as session:
                return await self._post(session, headers, payload)
        except asyncio.TimeoutError as e:
            raise SuggestionTimeoutError(
                f"Suggestion service timed out after {self.timeout:g}s"
            ) from e
        except aiohttp.ClientError as e:
            raise ExternalSuggestionError(f"Suggestion service unreachable: {e}") from e

    async def _post(self, session: aiohttp.ClientSession, headers: dict, payload: dict) -> str:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with session.post(self.url, json=payload, headers=headers, timeout=timeout) as resp:
            body = await resp.text()
            if not 200 <= resp.status < 300:
                logger.warning("Suggestion service returned HTTP %d: %.500s", resp.status, body)
                raise ExternalSuggestionError(
                    "Suggestion service request failed", status=resp.status, body=body,
                )
        try:
            return _reply_text(json.loads(body))
        except json.JSONDecodeError:
            return body


class SuggestionEngine:
    """Chooses a strategy and produces at most eight lowercase tags."""

    def __init__(self, client: Optional[SuggestionClient] = None):
        self.client = client

    @property
    def external_available(self) -> bool:
        return self.client is not None

    async def suggest(self, original_name: str, extension: str, strategy: str = "auto") -> list[str]:
        if strategy not in STRATEGIES:
            raise ValidationError(
                f"Unknown suggestion strategy '{strategy}'. Expected one of: {', '.join(STRATEGIES)}"
            )
        if strategy == "local" or (strategy == "auto" and self.client is None):
            return local_suggest(original_name, extension)
        return await self.suggest_external(original_name, extension)

    async def suggest_external(self, original_name: str, extension: str) -> list[str]:
        if self.client is None:
            raise SuggestionNotConfiguredError("Tag suggestion service is not configured")

        reply = await self.client.complete(build_prompt(original_name, extension))
        tags = dedupe_tags(normalize_tags(extract_json_array(reply)))
        if tags:
            return tags[:MAX_SUGGESTED_TAGS]

        logger.info("No usable tags in suggestion reply for %s, using filename heuristic", original_name)
        return local_suggest(original_name, extension)
