"""Sample-format conversion for realtime audio input."""

from __future__ import annotations

import numpy as np

REALTIME_SAMPLE_RATE = 24000


def pcm16_from_float32(chunk: np.ndarray) -> bytes:
    """Convert float32 PCM (-1..1) to 16-bit little-endian bytes."""
    scaled = np.clip(chunk, -1.0, 1.0)
    return (scaled * 32767.0).astype('<i2').tobytes()
