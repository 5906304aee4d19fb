from __future__ import annotations

import math
from dataclasses import dataclass

from panda3d.core import LVector3d

from ittycity.physics.motion.state import CameraOrbit, PlayerState
from ittycity.physics.tuning import MovementTuning

_HALF_PI = math.pi * 0.5


@dataclass(frozen=True)
class CameraPose:
    """Camera placement in the movement frame (Y-up). `target` is the look-at point."""

    position: LVector3d
    target: LVector3d
    yaw: float
    pitch: float


def smoothing_factor(*, smoothness: float, dt: float) -> float:
    frame_dt = max(0.0, float(dt))
    return 1.0 - math.exp(-max(0.0, float(smoothness)) * frame_dt)


def _lerp_vec(a: LVector3d, b: LVector3d, t: float) -> LVector3d:
    tt = max(0.0, min(1.0, float(t)))
    return LVector3d(
        float(a.x) + (float(b.x) - float(a.x)) * tt,
        float(a.y) + (float(b.y) - float(a.y)) * tt,
        float(a.z) + (float(b.z) - float(a.z)) * tt,
    )


class OrbitCameraRig:
    """
    Third-person camera on a sphere around the player.

    Mouse motion turns yaw/pitch, wheel ticks change distance. The camera eases toward the
    orbit point (exponential decay) and always aims at the player plus a small lift.
    """

    first_person = False

    def __init__(self, *, tuning: MovementTuning, orbit: CameraOrbit | None = None) -> None:
        self.tuning = tuning
        self.orbit = orbit or CameraOrbit(distance=float(tuning.camera_distance))
        self._position: LVector3d | None = None
        self.clamp()

    @property
    def yaw(self) -> float:
        return float(self.orbit.yaw)

    def reset(self) -> None:
        self._position = None

    def clamp(self) -> None:
        t = self.tuning
        self.orbit.pitch = max(float(t.camera_pitch_min), min(float(t.camera_pitch_max), float(self.orbit.pitch)))
        self.orbit.distance = max(
            float(t.camera_min_distance),
            min(float(t.camera_max_distance), float(self.orbit.distance)),
        )

    def apply_look(self, *, dx: float, dy: float) -> None:
        sens = float(self.tuning.mouse_sensitivity)
        self.orbit.yaw = float(self.orbit.yaw) - float(dx) * sens
        self.orbit.pitch = float(self.orbit.pitch) + float(dy) * sens
        self.clamp()

    def apply_zoom(self, steps: int) -> None:
        if not steps:
            return
        self.orbit.distance = float(self.orbit.distance) - float(steps) * float(self.tuning.camera_zoom_step)
        self.clamp()

    def set_angles(self, *, yaw: float, pitch: float) -> None:
        self.orbit.yaw = float(yaw)
        self.orbit.pitch = float(pitch)
        self.clamp()

    @property
    def view_pitch(self) -> float:
        """Pitch of the view direction, positive looking up. The camera sits opposite it on the orbit."""
        return -float(self.orbit.pitch)

    def set_view(self, *, yaw: float, pitch: float) -> None:
        self.set_angles(yaw=yaw, pitch=-float(pitch))

    def target_for(self, player: PlayerState) -> LVector3d:
        return LVector3d(player.position) + LVector3d(0.0, float(self.tuning.camera_target_offset_y), 0.0)

    def desired_position(self, player: PlayerState) -> LVector3d:
        yaw = float(self.orbit.yaw)
        pitch = float(self.orbit.pitch)
        d = float(self.orbit.distance)
        offset = LVector3d(
            math.sin(yaw) * math.cos(pitch) * d,
            math.sin(pitch) * d,
            math.cos(yaw) * math.cos(pitch) * d,
        )
        return self.target_for(player) + offset

    def update(self, player: PlayerState, *, dt: float) -> CameraPose:
        desired = self.desired_position(player)
        if self._position is None:
            self._position = LVector3d(desired)
        else:
            blend = smoothing_factor(smoothness=float(self.tuning.camera_smoothness), dt=dt)
            self._position = _lerp_vec(self._position, desired, blend)
        return CameraPose(
            position=LVector3d(self._position),
            target=self.target_for(player),
            yaw=float(self.orbit.yaw),
            pitch=float(self.orbit.pitch),
        )


class FirstPersonRig:
    """Camera sits at the player's eye; orientation comes straight from accumulated yaw/pitch."""

    first_person = True

    def __init__(self, *, tuning: MovementTuning, orbit: CameraOrbit | None = None) -> None:
        self.tuning = tuning
        self.orbit = orbit or CameraOrbit(distance=0.0)
        self.clamp()

    @property
    def yaw(self) -> float:
        return float(self.orbit.yaw)

    def reset(self) -> None:
        return

    def clamp(self) -> None:
        self.orbit.pitch = max(-_HALF_PI, min(_HALF_PI, float(self.orbit.pitch)))

    def apply_look(self, *, dx: float, dy: float) -> None:
        sens = float(self.tuning.mouse_sensitivity)
        self.orbit.yaw = float(self.orbit.yaw) - float(dx) * sens
        self.orbit.pitch = float(self.orbit.pitch) - float(dy) * sens
        self.clamp()

    def apply_zoom(self, steps: int) -> None:
        return

    def set_angles(self, *, yaw: float, pitch: float) -> None:
        self.orbit.yaw = float(yaw)
        self.orbit.pitch = float(pitch)
        self.clamp()

    @property
    def view_pitch(self) -> float:
        return float(self.orbit.pitch)

    def set_view(self, *, yaw: float, pitch: float) -> None:
        self.set_angles(yaw=yaw, pitch=pitch)

    def forward(self) -> LVector3d:
        yaw = float(self.orbit.yaw)
        pitch = float(self.orbit.pitch)
        return LVector3d(-math.sin(yaw) * math.cos(pitch), math.sin(pitch), -math.cos(yaw) * math.cos(pitch))

    def update(self, player: PlayerState, *, dt: float) -> CameraPose:
        pos = LVector3d(player.position)
        return CameraPose(
            position=pos,
            target=pos + self.forward(),
            yaw=float(self.orbit.yaw),
            pitch=float(self.orbit.pitch),
        )


CameraRig = OrbitCameraRig | FirstPersonRig


def make_rig(*, tuning: MovementTuning, first_person: bool) -> CameraRig:
    if first_person:
        return FirstPersonRig(tuning=tuning)
    return OrbitCameraRig(tuning=tuning)
