import pytest

from bg_remover.models.errors import InvalidDimensions
from bg_remover.models.pixel_buffer import PixelBuffer
from bg_remover.services.color_sampler import ColorSampler


@pytest.fixture
def sampler():
    return ColorSampler()


def test_uniform_white(sampler, make_buffer):
    white = (255, 255, 255)
    buf = make_buffer([[white, white], [white, white]])
    assert sampler.estimate(buf) == (255, 255, 255)


def test_single_pixel_is_its_own_background(sampler, make_buffer):
    assert sampler.estimate(make_buffer([[(12, 34, 56, 7)]])) == (12, 34, 56)


def test_corner_average(sampler, make_buffer):
    buf = make_buffer([
        [(0, 0, 0), (40, 40, 40)],
        [(80, 80, 80), (120, 120, 120)],
    ])
    assert sampler.estimate(buf) == (60, 60, 60)


def test_only_corners_count(sampler, framed_buffer):
    assert sampler.estimate(framed_buffer) == (0, 0, 0)


def test_alpha_is_ignored(sampler, make_buffer):
    buf = make_buffer([[(9, 9, 9, 0), (9, 9, 9, 255)], [(9, 9, 9, 17), (9, 9, 9, 128)]])
    assert sampler.estimate(buf) == (9, 9, 9)


@pytest.mark.parametrize("corner_sum,expected", [
    (2, 1),    # 0.5 -> 1
    (6, 2),    # 1.5 -> 2
    (10, 3),   # 2.5 -> 3
    (1, 0),    # 0.25 -> 0
    (3, 1),    # 0.75 -> 1
])
def test_ties_round_half_up(sampler, make_buffer, corner_sum, expected):
    last = corner_sum
    buf = make_buffer([[(0, 0, 0), (0, 0, 0)], [(0, 0, 0), (last, last, last)]])
    assert sampler.estimate(buf) == (expected,) * 3


def test_single_column(sampler, make_buffer):
    buf = make_buffer([[(10, 0, 0)], [(255, 255, 255)], [(30, 0, 0)]])
    # top corners are both (0,0), bottom corners both (0,2)
    assert sampler.estimate(buf) == (20, 0, 0)


def test_estimate_is_deterministic(sampler, framed_buffer):
    assert sampler.estimate(framed_buffer) == sampler.estimate(framed_buffer)


def test_empty_buffer_is_rejected(sampler):
    with pytest.raises(InvalidDimensions):
        sampler.estimate(PixelBuffer(width=0, height=0, data=[]))
