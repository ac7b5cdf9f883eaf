"""Embedding utilities wrapping OpenAI's embeddings API.

Provides:
- Embedder: batched document embedding and single-query embedding through one
  OpenAI client, with batches bounded by input count and a token budget.
- get_encoding / count_tokens: tiktoken tokenizer lookup and token counting.
- plan_batches: the batching arithmetic, exposed for reuse and tests.

Token counts come from the model's tiktoken encoding, so the per-input limit and the
per-request budget hold for the provider's own count. Batches are sent strictly one
after another: every batch shares one rate-limited credential. Any failing batch
aborts the whole call and no partial result is returned. Models and limits are
configured via reporag.config.settings.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

import tiktoken
from openai import OpenAI, OpenAIError

from reporag.config import settings
from reporag.errors import EmbeddingProviderError, EmbeddingUnavailable
from reporag.obs import span
from reporag.schemas import Document, Vector

logger = logging.getLogger(__name__)

# cl100k_base is the encoding of the OpenAI embedding models
DEFAULT_ENCODING = "cl100k_base"

_encodings: Dict[str, tiktoken.Encoding] = {}
_encodings_lock = threading.Lock()


def get_encoding(model: str) -> tiktoken.Encoding:
    """Return the tiktoken encoding for a model, cl100k_base when tiktoken does not know it."""
    with _encodings_lock:
        enc = _encodings.get(model)
        if enc is None:
            try:
                enc = tiktoken.encoding_for_model(model)
            except KeyError:
                enc = tiktoken.get_encoding(DEFAULT_ENCODING)
            _encodings[model] = enc
        return enc


def count_tokens(text: str, encoding: Optional[tiktoken.Encoding] = None) -> int:
    """Count tokens in text using tiktoken.

    Special-token markers such as ``<|endoftext|>`` are counted as plain text.
    """
    enc = encoding or tiktoken.get_encoding(DEFAULT_ENCODING)
    return len(enc.encode(text, disallowed_special=()))


def plan_batches(token_counts: Sequence[int], max_items: int, token_budget: int) -> List[List[int]]:
    """Partition input indexes into consecutive batches.

    Each batch holds at most ``max_items`` inputs and, unless it consists of a single
    oversized input, at most ``token_budget`` tokens. Input order is preserved.

    Args:
        token_counts: Token count of each input.
        max_items: Maximum number of inputs per provider request.
        token_budget: Maximum tokens per provider request.

    Returns:
        List[List[int]]: Batches of indexes into ``token_counts``.
    """
    batches: List[List[int]] = []
    current: List[int] = []
    current_tokens = 0
    for i, tokens in enumerate(token_counts):
        if current and (len(current) >= max_items or current_tokens + tokens > token_budget):
            batches.append(current)
            current = []
            current_tokens = 0
        current.append(i)
        current_tokens += tokens
    if current:
        batches.append(current)
    return batches


class Embedder:
    """Turn Documents and queries into embedding vectors.

    Args:
        client: Pre-built client exposing ``embeddings.create(model=..., input=...)``.
            When omitted, an OpenAI client is created lazily from ``api_key``.
        api_key: Embedding credential; defaults to settings.OPENAI_API_KEY.
        model: Embedding model name.
        batch_size: Maximum inputs per request.
        token_budget: Maximum tokens per request.
        max_input_tokens: Per-input limit; longer texts are truncated for embedding only.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        batch_size: Optional[int] = None,
        token_budget: Optional[int] = None,
        max_input_tokens: Optional[int] = None,
    ):
        self._client = client
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_EMBEDDING_MODEL
        self.batch_size = max(1, batch_size or settings.EMBEDDING_BATCH_SIZE)
        self.token_budget = token_budget or settings.EMBEDDING_BATCH_TOKEN_BUDGET
        self.max_input_tokens = max_input_tokens or settings.EMBEDDING_MAX_INPUT_TOKENS

    def get_client(self) -> Any:
        """Return the embeddings client, creating the OpenAI client on first use.

        Raises:
            EmbeddingUnavailable: No client was injected and no API key is configured.
        """
        if self._client is None:
            if not self.api_key:
                raise EmbeddingUnavailable("OPENAI_API_KEY is required for embeddings")
            self._client = OpenAI(
                api_key=self.api_key,
                max_retries=settings.EMBEDDING_MAX_RETRIES,
                timeout=settings.EMBEDDING_TIMEOUT_SECONDS,
            )
        return self._client

    def _prepare(self, text: str) -> Tuple[str, int]:
        """Truncate text to the per-input token limit; returns (text, token count)."""
        enc = get_encoding(self.model)
        tokens = enc.encode(text, disallowed_special=())
        if len(tokens) <= self.max_input_tokens:
            return text, len(tokens)
        limit = self.max_input_tokens
        # a cut inside a multi-byte character can re-encode to more tokens
        while True:
            truncated = enc.decode(tokens[:limit])
            n = len(enc.encode(truncated, disallowed_special=()))
            if n <= self.max_input_tokens:
                logger.debug("Truncated input from %d to %d tokens", len(tokens), n)
                return truncated, n
            limit -= 1

    def _embed_batch(self, texts: List[str]) -> List[List[float]]:
        client = self.get_client()
        try:
            resp = client.embeddings.create(model=self.model, input=texts)
        except OpenAIError as e:
            raise EmbeddingProviderError(
                f"Embedding API error: {e}", status_code=getattr(e, "status_code", None)
            ) from e
        data = sorted(resp.data, key=lambda d: d.index)
        if len(data) != len(texts):
            raise EmbeddingProviderError(
                f"Embedding API returned {len(data)} embeddings for {len(texts)} inputs"
            )
        return [list(d.embedding) for d in data]

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed texts in sequential batches.

        Args:
            texts: Input strings.

        Returns:
            List[List[float]]: One embedding per input, in input order.

        Raises:
            EmbeddingUnavailable: No credential configured.
            EmbeddingProviderError: Any batch failed; nothing is returned.
        """
        if not texts:
            return []
        self.get_client()
        prepared, counts = zip(*(self._prepare(t) for t in texts))
        batches = plan_batches(counts, self.batch_size, self.token_budget)

        out: List[List[float]] = []
        for n, batch in enumerate(batches, start=1):
            logger.debug("Embedding batch %d/%d: %d inputs", n, len(batches), len(batch))
            with span("embedding.batch", {"batch": n, "size": len(batch), "model": self.model}):
                out.extend(self._embed_batch([prepared[i] for i in batch]))
        logger.info("Generated %d embeddings in %d batches", len(out), len(batches))
        return out

    def embed_documents(self, documents: Sequence[Document]) -> List[Vector]:
        """Embed Documents, copying each Document's location into its Vector's metadata."""
        values = self.embed_texts([d.content for d in documents])
        return [
            Vector(id=doc.id, values=vec, metadata=doc.metadata)
            for doc, vec in zip(documents, values)
        ]

    def embed_query(self, text: str) -> List[float]:
        """Embed a single query string and return its embedding vector."""
        self.get_client()
        with span("embedding.query", {"model": self.model}):
            return self._embed_batch([self._prepare(text)[0]])[0]
