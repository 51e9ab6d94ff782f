"""Sharpness scores for captured frames; higher means better focus."""

from __future__ import annotations

import random
import statistics

from .config import FrameView


def random_score(frame: FrameView, rng: random.Random | None = None) -> float:
    """A placeholder score in [0.0, 1.0) in steps of 0.01, independent of the frame."""
    return (rng or random).randrange(100) / 100.0


def laplacian_score(frame: FrameView) -> float:
    """Variance of the Laplacian of the frame read as 8-bit grayscale.

    Without a known width the data is treated as a single row.
    """
    data, width = frame.data, frame.width
    if width <= 0:
        responses = [a + c - 2 * b for a, b, c in zip(data, data[1:], data[2:])]
    else:
        if len(data) % width:
            raise ValueError(f"{len(data)} bytes do not form rows of width {width}")
        rows = [data[i:i + width] for i in range(0, len(data), width)]
        responses = [
            left + right + up + down - 4 * centre
            for above, row, below in zip(rows, rows[1:], rows[2:])
            for left, centre, right, up, down in zip(row, row[1:], row[2:], above[1:], below[1:])
        ]
    return float(statistics.pvariance(responses)) if responses else 0.0