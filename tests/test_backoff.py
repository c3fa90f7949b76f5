"""Tests for the jittered poll backoff."""

import random

import pytest

from helpers import FixedRandom
from webtail.backoff import Backoff


def test_first_wait_is_base_plus_jitter() -> None:
    backoff = Backoff(1.0, rng=FixedRandom(0.25))
    assert backoff.next() == pytest.approx(1.25)


def test_interval_grows_by_less_than_base_per_empty_read() -> None:
    backoff = Backoff(0.5, rng=random.Random(3))
    previous = backoff.interval
    for _ in range(50):
        value = backoff.next()
        assert previous <= value < previous + 0.5
        previous = value


def test_reset_returns_to_base() -> None:
    backoff = Backoff(1.0, rng=FixedRandom(0.9))
    for _ in range(5):
        backoff.next()
    assert backoff.interval > 5.0

    backoff.reset()
    assert backoff.interval == 1.0
    assert backoff.next() == pytest.approx(1.9)


def test_ceiling_caps_the_interval() -> None:
    backoff = Backoff(1.0, ceiling=2.5, rng=FixedRandom(0.9))
    waits = [backoff.next() for _ in range(5)]
    assert waits[:2] == pytest.approx([1.9, 2.5])
    assert max(waits) == 2.5


def test_seeded_sources_give_the_same_waits() -> None:
    a = Backoff(1.0, rng=random.Random(11))
    b = Backoff(1.0, rng=random.Random(11))
    assert [a.next() for _ in range(10)] == [b.next() for _ in range(10)]


@pytest.mark.parametrize(("base", "ceiling"), [(0, None), (-1.0, None), (2.0, 1.0)])
def test_invalid_settings_are_rejected(base: float, ceiling: float | None) -> None:
    with pytest.raises(ValueError):
        Backoff(base, ceiling)
