"""Embedding API client.

Failures never propagate: a missing API key, an HTTP error or an unexpected
response body all yield ``None`` so callers can fall back to text-only
behaviour.
"""

import logging

import httpx

from mission_control.config import Config, get_config

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSIONS = 1536
_TIMEOUT = 30.0


def is_configured(config: Config | None = None) -> bool:
    config = config or get_config()
    return bool(config.openai_api_key)


def generate_embedding(text: str, config: Config | None = None) -> list[float] | None:
    """Embed a single text. Returns None when no embedding can be produced."""
    config = config or get_config()
    if not config.openai_api_key:
        logger.info("OPENAI_API_KEY not set, skipping embedding generation")
        return None

    data = _post(config, text)
    if data is None:
        return None
    try:
        return [float(x) for x in data["data"][0]["embedding"]]
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.error("Unexpected embedding response: %s", e)
        return None


def generate_embeddings_batch(
    texts: list[str],
    config: Config | None = None,
) -> list[list[float] | None]:
    """Embed several texts in one request, preserving input order."""
    config = config or get_config()
    if not texts:
        return []
    if not config.openai_api_key:
        logger.info("OPENAI_API_KEY not set, skipping batch embedding generation")
        return [None] * len(texts)

    data = _post(config, texts)
    if data is None:
        return [None] * len(texts)
    try:
        items = sorted(data["data"], key=lambda item: item["index"])
        results: list[list[float] | None] = [None] * len(texts)
        for item in items:
            results[item["index"]] = [float(x) for x in item["embedding"]]
        return results
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.error("Unexpected batch embedding response: %s", e)
        return [None] * len(texts)


def _post(config: Config, payload: str | list[str]) -> dict | None:
    try:
        response = httpx.post(
            config.embedding_url,
            headers={
                "Authorization": f"Bearer {config.openai_api_key}",
                "Content-Type": "application/json",
            },
            json={"model": config.embedding_model, "input": payload},
            timeout=_TIMEOUT,
        )
        response.raise_for_status()
        return response.json()
    except httpx.HTTPStatusError as e:
        logger.error("Embedding API error %s: %s", e.response.status_code, e.response.text)
        return None
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Failed to generate embedding: %s", e)
        return None
