from __future__ import annotations

import random

from ittycity.ui.overlay import (
    DEFAULT_SHAKE_DURATION_MS,
    DEFAULT_SHAKE_INTENSITY,
    CameraShake,
    flash_alpha,
    shake_params,
)


def test_shake_offsets_stay_within_intensity() -> None:
    shake = CameraShake(rng=random.Random(7))
    shake.start(now=1.0, intensity=0.4, duration_ms=500)
    assert shake.active(1.2)
    for i in range(50):
        off = shake.offset(1.0 + i * 0.005)
        assert abs(off.x) <= 0.2 and abs(off.y) <= 0.2 and abs(off.z) <= 0.2


def test_shake_stops_after_duration() -> None:
    shake = CameraShake(rng=random.Random(1))
    shake.start(now=0.0, intensity=1.0, duration_ms=100)
    assert shake.offset(0.05).length() > 0.0
    assert shake.offset(0.2).length() == 0.0
    assert not shake.active(0.2)


def test_shake_params_defaults() -> None:
    assert shake_params(None) == (DEFAULT_SHAKE_INTENSITY, DEFAULT_SHAKE_DURATION_MS)
    assert shake_params({"intensity": 0.5, "duration": 250}) == (0.5, 250.0)
    assert shake_params({"intensity": "big", "duration": True}) == (DEFAULT_SHAKE_INTENSITY, DEFAULT_SHAKE_DURATION_MS)


def test_flash_fades_out() -> None:
    assert flash_alpha(elapsed=0.0) == 1.0
    assert 0.0 < flash_alpha(elapsed=0.1) < 1.0
    assert flash_alpha(elapsed=0.35) == 0.0
    assert flash_alpha(elapsed=2.0) == 0.0
    assert flash_alpha(elapsed=-1.0) == 0.0
