from __future__ import annotations

import math
from dataclasses import dataclass

from panda3d.core import AmbientLight, DirectionalLight, Fog, LVector3d, LVector4f

from ittycity.game.coords import to_panda

WEATHER_CLEAR = "clear"
WEATHER_RAIN = "rain"
WEATHER_FOG = "fog"

_FOG_RANGES = {
    WEATHER_RAIN: (10.0, 100.0),
    WEATHER_FOG: (5.0, 50.0),
    WEATHER_CLEAR: (50.0, 500.0),
}

SUN_DISTANCE = 100.0
SUN_LIFT = 50.0


def hex_rgb(value: int) -> tuple[float, float, float]:
    v = int(value) & 0xFFFFFF
    return (((v >> 16) & 0xFF) / 255.0, ((v >> 8) & 0xFF) / 255.0, (v & 0xFF) / 255.0)


@dataclass(frozen=True)
class SkyPreset:
    name: str
    sky: tuple[float, float, float]
    fog: tuple[float, float, float]
    sun_intensity: float


SUNRISE = SkyPreset("sunrise", hex_rgb(0xFFB366), hex_rgb(0xFFCCAA), 1.0)
DAY = SkyPreset("day", hex_rgb(0x87CEEB), hex_rgb(0x87CEEB), 1.5)
SUNSET = SkyPreset("sunset", hex_rgb(0xFF6B4A), hex_rgb(0xFFAA88), 1.0)
NIGHT = SkyPreset("night", hex_rgb(0x0A0A20), hex_rgb(0x0A0A20), 0.2)


def sky_preset_for_hour(hour: float) -> SkyPreset:
    h = float(hour)
    if 6.0 <= h < 8.0:
        return SUNRISE
    if 8.0 <= h < 18.0:
        return DAY
    if 18.0 <= h < 20.0:
        return SUNSET
    return NIGHT


def sun_position(hour: float) -> LVector3d:
    """Sun on a circle over the X/Y plane: rises at 6, peaks at 12, sets at 18 (Y-up)."""

    angle = (float(hour) / 24.0 - 0.25) * math.pi * 2.0
    return LVector3d(math.cos(angle) * SUN_DISTANCE, math.sin(angle) * SUN_DISTANCE + SUN_LIFT, SUN_LIFT)


def fog_range_for_weather(weather: str) -> tuple[float, float]:
    # Unknown weather falls back to clear skies.
    return _FOG_RANGES.get(str(weather or "").strip().lower(), _FOG_RANGES[WEATHER_CLEAR])


class Atmosphere:
    """Sky colour, sun and linear distance fog for one render root."""

    def __init__(self, *, base, render) -> None:
        self.base = base
        self.render = render
        self.hour = 12.0
        self.weather = WEATHER_CLEAR
        self.preset = DAY

        ambient = AmbientLight("ambient")
        ambient.setColor(LVector4f(0.6, 0.6, 0.6, 1))
        self._ambient_np = render.attachNewNode(ambient)
        render.setLight(self._ambient_np)

        self._sun = DirectionalLight("sun")
        self._sun_np = render.attachNewNode(self._sun)
        render.setLight(self._sun_np)

        self._fog = Fog("weather-fog")
        self._fog.setMode(Fog.M_linear)
        self._fog_np = render.attachNewNode(self._fog)
        render.setFog(self._fog)

    def set_time(self, hour: float) -> SkyPreset:
        self.hour = max(0.0, min(24.0, float(hour)))
        self.preset = sky_preset_for_hour(self.hour)
        sky = self.preset.sky
        fog = self.preset.fog
        self.base.setBackgroundColor(sky[0], sky[1], sky[2], 1)
        self._fog.setColor(LVector4f(fog[0], fog[1], fog[2], 1))

        warm = (1.0, 0.96, 0.9)
        i = float(self.preset.sun_intensity)
        self._sun.setColor(LVector4f(warm[0] * i, warm[1] * i, warm[2] * i, 1))
        self._sun_np.setPos(to_panda(sun_position(self.hour)))
        self._sun_np.lookAt(0, 0, 0)
        return self.preset

    def set_weather(self, weather: str) -> tuple[float, float]:
        near, far = fog_range_for_weather(weather)
        self.weather = str(weather or WEATHER_CLEAR).strip().lower()
        if self.weather not in _FOG_RANGES:
            self.weather = WEATHER_CLEAR
        self._fog.setLinearRange(near, far)
        return (near, far)
