"""Vector encoding and similarity for the chunk store.

Vectors are stored as concatenated 4-byte little-endian IEEE-754 floats. The
encoding must round-trip bit-for-bit with databases written by earlier releases.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

_DTYPE = np.dtype("<f4")


def encode_vector(vector: Sequence[float]) -> bytes:
    """Encode *vector* as a float32 little-endian blob."""
    return np.asarray(vector, dtype=np.float64).astype(_DTYPE).tobytes()


def decode_vector(blob: bytes) -> list[float]:
    """Decode a float32 little-endian blob into a list of floats.

    Raises:
        ValueError: If the blob length is not a multiple of 4 bytes.
    """
    if len(blob) % _DTYPE.itemsize:
        raise ValueError(f"Vector blob length {len(blob)} is not a multiple of 4")
    return np.frombuffer(blob, dtype=_DTYPE).astype(np.float64).tolist()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return dot(a, b) / (|a| * |b|).

    Returns 0.0 when the vectors differ in length, are empty, or either has
    zero magnitude.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(va, vb) / (norm_a * norm_b))
