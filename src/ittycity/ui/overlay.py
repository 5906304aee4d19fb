"""On-screen message banner, white flash and camera shake for remote-control effects."""

from __future__ import annotations

import random

from direct.gui import DirectGuiGlobals as DGG
from direct.gui.DirectGui import DirectFrame, DirectLabel
from panda3d.core import LVector3d, TextNode

DEFAULT_SHAKE_INTENSITY = 0.1
DEFAULT_SHAKE_DURATION_MS = 500.0
FLASH_FADE_S = 0.35


class CameraShake:
    """Random camera offsets of up to `intensity` on each axis while active."""

    def __init__(self, *, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self.intensity = 0.0
        self._until = 0.0

    def start(self, *, now: float, intensity: float = DEFAULT_SHAKE_INTENSITY, duration_ms: float = DEFAULT_SHAKE_DURATION_MS) -> None:
        self.intensity = max(0.0, float(intensity))
        self._until = float(now) + max(0.0, float(duration_ms)) / 1000.0

    def active(self, now: float) -> bool:
        return self.intensity > 0.0 and float(now) < self._until

    def offset(self, now: float) -> LVector3d:
        if not self.active(now):
            self.intensity = 0.0
            return LVector3d(0, 0, 0)
        i = self.intensity
        return LVector3d(
            (self._rng.random() - 0.5) * i,
            (self._rng.random() - 0.5) * i,
            (self._rng.random() - 0.5) * i,
        )


def shake_params(params: dict | None) -> tuple[float, float]:
    """(intensity, duration_ms) from effect params; missing or non-numeric values take the defaults."""

    p = params or {}

    def _num(key: str, default: float) -> float:
        v = p.get(key)
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return default
        return max(0.0, float(v))

    return (_num("intensity", DEFAULT_SHAKE_INTENSITY), _num("duration", DEFAULT_SHAKE_DURATION_MS))


def flash_alpha(*, elapsed: float, fade_s: float = FLASH_FADE_S) -> float:
    if elapsed < 0.0 or fade_s <= 0.0:
        return 0.0
    return max(0.0, 1.0 - float(elapsed) / float(fade_s))


class EffectsOverlay:
    def __init__(self, *, aspect2d) -> None:
        self._message_until: float | None = None
        self._flash_started: float | None = None

        self._message = DirectLabel(
            parent=aspect2d,
            text="",
            text_scale=0.06,
            text_align=TextNode.ACenter,
            text_fg=(1, 1, 1, 1),
            frameColor=(0, 0, 0, 0.6),
            relief=DGG.FLAT,
            pad=(0.04, 0.02),
            pos=(0.0, 0.0, 0.7),
        )
        self._message["state"] = DGG.DISABLED
        self._message.hide()

        self._flash = DirectFrame(
            parent=aspect2d,
            frameColor=(1, 1, 1, 0),
            relief=DGG.FLAT,
            frameSize=(-4.0, 4.0, -1.0, 1.0),
        )
        self._flash["state"] = DGG.DISABLED
        self._flash.hide()

    def show_message(self, text: str, *, duration_ms: float, now: float) -> None:
        self._message["text"] = str(text)
        self._message.resetFrameSize()
        self._message.show()
        self._message_until = float(now) + max(0.0, float(duration_ms)) / 1000.0

    def flash(self, *, now: float) -> None:
        self._flash_started = float(now)
        self._flash["frameColor"] = (1, 1, 1, 1)
        self._flash.show()

    def tick(self, *, now: float) -> None:
        if self._message_until is not None and now >= self._message_until:
            self._message.hide()
            self._message_until = None
        if self._flash_started is not None:
            a = flash_alpha(elapsed=float(now) - self._flash_started)
            if a <= 0.0:
                self._flash.hide()
                self._flash_started = None
            else:
                self._flash["frameColor"] = (1, 1, 1, a)

    def destroy(self) -> None:
        self._message.destroy()
        self._flash.destroy()
