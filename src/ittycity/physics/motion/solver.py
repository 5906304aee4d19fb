from __future__ import annotations

import math
from dataclasses import dataclass

from panda3d.core import LVector3d

from ittycity.physics.motion.intent import InputState
from ittycity.physics.motion.state import MotionMode, PlayerState
from ittycity.physics.tuning import MovementTuning


@dataclass(frozen=True)
class MotionStep:
    """Integrator output: candidate horizontal displacement (y == 0) for this frame."""

    displacement: LVector3d
    jumped: bool
    dt: float


class MotionSolver:
    """Kinematic integrator: camera-relative walk/run displacement plus jump/gravity on the vertical axis."""

    def __init__(self, *, tuning: MovementTuning) -> None:
        self._tuning = tuning

    @property
    def tuning(self) -> MovementTuning:
        return self._tuning

    def clamp_dt(self, dt: float) -> float:
        return max(0.0, min(float(self._tuning.max_dt), float(dt)))

    def horizontal_speed(self, *, running: bool) -> float:
        mult = float(self._tuning.run_multiplier) if running else 1.0
        return float(self._tuning.base_speed) * mult

    @staticmethod
    def wish_direction(*, intent: InputState, camera_yaw: float) -> LVector3d:
        """Unit horizontal direction from held keys, rotated by camera yaw. Zero when idle."""

        fwd, right = intent.move_axes()
        if fwd == 0 and right == 0:
            return LVector3d(0, 0, 0)
        # Local frame: +X right, -Z forward.
        lx = float(right)
        lz = -float(fwd)
        inv_len = 1.0 / math.sqrt(lx * lx + lz * lz)
        lx *= inv_len
        lz *= inv_len
        c = math.cos(float(camera_yaw))
        s = math.sin(float(camera_yaw))
        return LVector3d(lx * c + lz * s, 0.0, -lx * s + lz * c)

    def try_jump(self, state: PlayerState, *, jump_requested: bool) -> bool:
        if not jump_requested or not state.on_ground:
            return False
        state.velocity.y = float(self._tuning.jump_impulse)
        state.mode = MotionMode.AIRBORNE
        return True

    def apply_gravity(self, state: PlayerState, *, dt: float) -> None:
        state.velocity.y = float(state.velocity.y) - float(self._tuning.gravity) * float(dt)
        state.position.y = float(state.position.y) + float(state.velocity.y) * float(dt)

    def integrate(self, state: PlayerState, *, intent: InputState, camera_yaw: float, dt: float) -> MotionStep:
        step_dt = self.clamp_dt(dt)
        state.is_running = bool(intent.run)
        if step_dt <= 0.0:
            return MotionStep(displacement=LVector3d(0, 0, 0), jumped=False, dt=0.0)

        jumped = self.try_jump(state, jump_requested=bool(intent.jump))

        wish = self.wish_direction(intent=intent, camera_yaw=camera_yaw)
        displacement = LVector3d(0, 0, 0)
        if wish.lengthSquared() > 0.0:
            state.yaw = math.atan2(float(wish.x), float(wish.z))
            displacement = wish * (self.horizontal_speed(running=state.is_running) * step_dt)

        # Vertical integration is unconditional; collision resolution happens afterwards.
        self.apply_gravity(state, dt=step_dt)
        return MotionStep(displacement=displacement, jumped=jumped, dt=step_dt)
