"""Embedding encoding and fixed-width vector serialization.

Vectors are stored as packed little-endian floats. A single element width is
used for the whole vector space: query vectors and stored vectors must agree,
otherwise cosine scores are computed over garbage.
"""
from typing import List, Optional, Sequence

import numpy as np
import structlog

from policyqa import config
from policyqa.errors import CodecError, EmbeddingError
from policyqa.rag.providers import EmbeddingProvider

logger = structlog.get_logger()

# element width in bytes -> numpy little-endian dtype
DTYPES = {
    4: np.dtype("<f4"),
    8: np.dtype("<f8"),
}


def _dtype_for(element_width: int) -> np.dtype:
    try:
        return DTYPES[element_width]
    except KeyError:
        raise CodecError(
            f"Unsupported vector element width: {element_width} "
            f"(expected one of {sorted(DTYPES)})"
        ) from None


def serialize_vector(vector: Sequence[float], element_width: int) -> bytes:
    """Pack a vector into little-endian bytes of the given element width."""
    dtype = _dtype_for(element_width)
    try:
        return np.asarray(vector, dtype=dtype).tobytes()
    except (TypeError, ValueError) as e:
        raise CodecError(f"Vector is not a flat sequence of numbers: {e}") from e


def deserialize_vector(data: bytes, element_width: int) -> List[float]:
    """Unpack bytes produced by serialize_vector."""
    dtype = _dtype_for(element_width)
    if len(data) % element_width != 0:
        raise CodecError(
            f"Vector byte length {len(data)} is not a multiple of "
            f"element width {element_width}"
        )
    return np.frombuffer(data, dtype=dtype).tolist()


class EmbeddingCodec:
    """Turns text into vectors and vectors into bytes, at one precision."""

    def __init__(self, provider: Optional[EmbeddingProvider] = None, element_width: int = None):
        """Initialize the codec.

        Args:
            provider: Embedding provider used by encode(); a chunk store only
                packs and unpacks bytes and can leave it out
            element_width: Bytes per element, 4 or 8 (default from config)
        """
        self.provider = provider
        self.element_width = element_width or config.VECTOR_ELEMENT_WIDTH
        self.dtype = _dtype_for(self.element_width)

    def encode(self, text: str) -> List[float]:
        """Embed text and round the result to the codec's precision.

        Raises:
            EmbeddingError: If the provider fails or returns no vector
        """
        try:
            raw = self.provider.embed(text)
        except Exception as e:
            logger.error(
                "embedding_generation_failed",
                text_preview=text[:100],
                error=str(e),
                error_type=type(e).__name__,
            )
            raise EmbeddingError(f"Embedding generation failed: {e}") from e

        if raw is None:
            logger.error("empty_embedding_returned", text_preview=text[:100])
            raise EmbeddingError("No embedding generated for text")

        try:
            vector = np.asarray(raw, dtype=self.dtype)
        except (TypeError, ValueError) as e:
            raise EmbeddingError(f"Embedding is not a numeric vector: {e}") from e

        if vector.ndim != 1:
            raise EmbeddingError(f"Embedding is not a flat vector (shape {vector.shape})")
        if vector.size == 0:
            logger.error("empty_embedding_returned", text_preview=text[:100])
            raise EmbeddingError("No embedding generated for text")

        return vector.tolist()

    def serialize(self, vector: Sequence[float]) -> bytes:
        return serialize_vector(vector, self.element_width)

    def deserialize(self, data: bytes, element_width: Optional[int] = None) -> List[float]:
        """Decode vector bytes.

        Args:
            data: Packed vector bytes
            element_width: Width the bytes were written with, if it differs
                from the codec's own (legacy rows)

        Raises:
            CodecError: If the length is not a multiple of the element width
        """
        return deserialize_vector(data, element_width or self.element_width)


def check_store_width(store, codec: EmbeddingCodec) -> None:
    """Refuse a store that packs vectors at a different width than the codec.

    Raises:
        CodecError: If the widths differ
    """
    store_width = getattr(store, "element_width", None)
    if store_width is not None and store_width != codec.element_width:
        raise CodecError(
            f"Chunk store packs {store_width}-byte elements but the embedding "
            f"codec encodes {codec.element_width}-byte elements"
        )
