"""Route sample cleanup and downsampling."""

from __future__ import annotations

import math
from collections.abc import Iterable

from workouts.models import RouteSample


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def is_usable_sample(sample: RouteSample) -> bool:
    lat, lon = sample.latitude, sample.longitude
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    if lat == 0 and lon == 0:
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def clean_samples(samples: Iterable[RouteSample]) -> list[RouteSample]:
    """Drop unusable fixes and order the rest by time."""
    usable = [s for s in samples if is_usable_sample(s)]
    usable.sort(key=lambda s: s.timestamp)
    return usable


def downsample(samples: list[RouteSample], max_points: int) -> list[RouteSample]:
    """Pick at most ``max_points`` samples with a uniform stride.

    The first and last samples are always kept.
    """
    count = len(samples)
    if count <= max_points:
        return list(samples)
    if max_points <= 1:
        return samples[:max_points]

    step = (count - 1) / (max_points - 1)
    picked: list[RouteSample] = []
    last_index = -1
    for i in range(max_points):
        index = min(count - 1, _round_half_up(i * step))
        if index == last_index:
            continue
        picked.append(samples[index])
        last_index = index
    return picked


def prepare_route(
    samples: Iterable[RouteSample],
    max_points: int,
) -> list[RouteSample]:
    return downsample(clean_samples(samples), max_points)


__all__ = ["clean_samples", "downsample", "is_usable_sample", "prepare_route"]
