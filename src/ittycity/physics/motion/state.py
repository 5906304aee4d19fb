from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from panda3d.core import LVector3d


class MotionMode(str, Enum):
    GROUNDED = "grounded"
    AIRBORNE = "airborne"


@dataclass
class PlayerState:
    """Authoritative kinematic body. World frame is Y-up, -Z forward."""

    position: LVector3d = field(default_factory=lambda: LVector3d(0, 0, 0))
    velocity: LVector3d = field(default_factory=lambda: LVector3d(0, 0, 0))
    # Facing derived from movement direction; independent of camera yaw.
    yaw: float = 0.0
    is_running: bool = False
    mode: MotionMode = MotionMode.AIRBORNE
    ground_height: float = 0.0

    @property
    def on_ground(self) -> bool:
        return self.mode is MotionMode.GROUNDED

    def feet_y(self, body_height: float) -> float:
        return float(self.position.y) - float(body_height)

    def copy(self) -> "PlayerState":
        return PlayerState(
            position=LVector3d(self.position),
            velocity=LVector3d(self.velocity),
            yaw=float(self.yaw),
            is_running=bool(self.is_running),
            mode=self.mode,
            ground_height=float(self.ground_height),
        )


@dataclass
class CameraOrbit:
    """Derived camera angles (radians) and orbit distance; recomputed each frame."""

    yaw: float = 0.0
    pitch: float = 0.0
    distance: float = 5.0
