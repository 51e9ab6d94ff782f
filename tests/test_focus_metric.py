import random

import pytest

from autofocus.config import FrameView
from autofocus.focus_metric import laplacian_score, random_score


def test_random_score_is_reproducible_with_seed():
    frame = FrameView(data=b"\x00" * 4)
    first = random_score(frame, random.Random(7))
    second = random_score(frame, random.Random(7))
    assert 0.0 <= first < 1.0
    assert first == second


@pytest.mark.parametrize("seed", range(50))
def test_random_score_range_and_resolution(seed):
    score = random_score(FrameView(), random.Random(seed))
    assert 0.0 <= score < 1.0
    assert round(score * 100) == pytest.approx(score * 100)


def test_random_score_default_source():
    assert 0.0 <= random_score(FrameView()) < 1.0


def test_uniform_frame_has_zero_score():
    frame = FrameView(data=bytes([128]) * 64, width=8, height=8)
    assert laplacian_score(frame) == 0.0


def test_linear_ramp_has_zero_score():
    assert laplacian_score(FrameView(data=bytes(range(0, 200, 5)))) == 0.0


def test_sharp_pattern_beats_smooth_one():
    width = 8
    checker = bytes(255 * ((x + y) % 2) for y in range(width) for x in range(width))
    smooth = bytes(min(255, 4 * (x + y)) for y in range(width) for x in range(width))
    sharp_score = laplacian_score(FrameView(data=checker, width=width, height=width))
    smooth_score = laplacian_score(FrameView(data=smooth, width=width, height=width))
    assert sharp_score > smooth_score


def test_frame_too_small_scores_zero():
    assert laplacian_score(FrameView(data=b"\x01\x02", width=2, height=1)) == 0.0
    assert laplacian_score(FrameView()) == 0.0


def test_ragged_frame_rejected():
    with pytest.raises(ValueError):
        laplacian_score(FrameView(data=b"\x00" * 10, width=3))