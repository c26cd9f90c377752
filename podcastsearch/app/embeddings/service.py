from __future__ import annotations

import hashlib
import logging
import math

import httpx

from podcastsearch.core.config import AppConfig
from podcastsearch.core.errors import EmbeddingError

LOGGER = logging.getLogger(__name__)

DEFAULT_DIMENSIONS = 384


class EmbeddingProvider:
    async def encode(self, text: str) -> list[float]:
        raise NotImplementedError

    def is_available(self) -> bool:
        raise NotImplementedError


class DeterministicEmbeddingProvider(EmbeddingProvider):
    """Hash-seeded unit vectors; stable per text but not semantically meaningful."""

    def __init__(self, dimensions: int = DEFAULT_DIMENSIONS) -> None:
        self._dimensions = dimensions
        LOGGER.warning(
            "Using deterministic stub embeddings; kNN results are not semantic",
            extra={"dimensions": dimensions},
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _hash_vector(self, text: str) -> list[float]:
        required_bytes = self._dimensions
        digest_source = b""
        seed = text.encode("utf-8")
        while len(digest_source) < required_bytes:
            seed = hashlib.sha256(seed).digest()
            digest_source += seed
        values = [(value / 127.5) - 1.0 for value in digest_source[: self._dimensions]]
        norm = math.sqrt(sum(value * value for value in values))
        if norm == 0:
            return values
        return [value / norm for value in values]

    async def encode(self, text: str) -> list[float]:
        if not text or not text.strip():
            return [0.0] * self._dimensions
        return self._hash_vector(text)

    def is_available(self) -> bool:
        return True


class RemoteEmbeddingProvider(EmbeddingProvider):
    """Calls an HTTP embedding API exposing ``GET /health`` and ``POST /embed``.

    Availability is an optimistic flag: a successful call sets it, a failed
    call clears it. There is no timed retry; the next successful health check
    or encode call re-opens the gate.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float,
        dimensions: int = DEFAULT_DIMENSIONS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._dimensions = dimensions
        self._transport = transport
        self._available = False

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout_seconds, transport=self._transport
        )

    async def check_health(self) -> bool:
        try:
            async with self._client() as client:
                response = await client.get(f"{self._base_url}/health")
            if response.status_code != 200:
                LOGGER.warning(
                    "Embedding API health check failed",
                    extra={"status_code": response.status_code},
                )
                self._available = False
                return False
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.warning(
                "Embedding API not available; kNN/hybrid search will fall back to BM25",
                extra={"error": exc.__class__.__name__},
            )
            self._available = False
            return False

        dimensions = payload.get("dimensions") if isinstance(payload, dict) else None
        if isinstance(dimensions, int) and dimensions > 0:
            self._dimensions = dimensions
        self._available = True
        LOGGER.info(
            "Embedding API connected",
            extra={
                "model": payload.get("model") if isinstance(payload, dict) else None,
                "dimensions": self._dimensions,
            },
        )
        return True

    async def encode(self, text: str) -> list[float]:
        if not text or not text.strip():
            return [0.0] * self._dimensions

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self._base_url}/embed", json={"texts": [text]}
                )
            response.raise_for_status()
            payload = response.json()
            embeddings = payload.get("embeddings") if isinstance(payload, dict) else None
            if not isinstance(embeddings, list) or not embeddings:
                raise EmbeddingError("Empty embeddings response")
            vector = [float(value) for value in embeddings[0]]
        except (httpx.HTTPError, ValueError, TypeError, EmbeddingError) as exc:
            LOGGER.error(
                "Failed to encode text", extra={"error": exc.__class__.__name__}
            )
            self._available = False
            if isinstance(exc, EmbeddingError):
                raise
            raise EmbeddingError("Embedding API call failed") from exc

        self._available = True
        return vector

    def is_available(self) -> bool:
        return self._available


def build_embedding_provider(config: AppConfig) -> EmbeddingProvider:
    backend = config.embedding_backend
    if backend == "stub":
        return DeterministicEmbeddingProvider(dimensions=config.embedding_dimensions)
    if backend != "remote":
        LOGGER.warning(
            "Unknown embedding backend; using remote provider",
            extra={"embedding_backend": backend},
        )
    return RemoteEmbeddingProvider(
        base_url=config.embedding_service_url,
        timeout_seconds=config.embedding_timeout_seconds,
        dimensions=config.embedding_dimensions,
    )
