from __future__ import annotations

from enum import Enum

from ittycity.physics.motion.state import MotionMode, PlayerState
from ittycity.physics.tuning import MovementTuning


class GroundTransition(str, Enum):
    STEP_UP = "step_up"
    LAND = "land"
    STEP_DOWN = "step_down"
    AIRBORNE = "airborne"


def is_step_up(*, was_grounded: bool, height_diff: float, step_height: float) -> bool:
    return bool(was_grounded) and 0.0 < float(height_diff) <= float(step_height)


def is_landing(*, vertical_velocity: float, feet_y: float, ground_y: float) -> bool:
    return float(vertical_velocity) <= 0.0 and float(feet_y) <= float(ground_y)


def is_step_down(*, was_grounded: bool, vertical_velocity: float, height_diff: float, step_height: float) -> bool:
    return bool(was_grounded) and float(vertical_velocity) <= 0.0 and -float(step_height) <= float(height_diff) <= 0.0


def is_too_tall(*, was_grounded: bool, height_diff: float, feet_y: float, ground_y: float, step_height: float) -> bool:
    """A rise above step height in front of a grounded player blocks like a wall."""

    return bool(was_grounded) and float(height_diff) > float(step_height) and float(ground_y) > float(feet_y)


class StepPolicy:
    """Grounded/airborne transitions after the horizontal move has been resolved."""

    def __init__(self, *, tuning: MovementTuning) -> None:
        self.tuning = tuning

    def classify(self, state: PlayerState, *, ground_y: float | None, was_grounded: bool) -> GroundTransition:
        if ground_y is None:
            return GroundTransition.AIRBORNE

        step = float(self.tuning.step_height)
        diff = float(ground_y) - float(state.ground_height)
        vy = float(state.velocity.y)
        feet = state.feet_y(float(self.tuning.body_height))

        if is_step_up(was_grounded=was_grounded, height_diff=diff, step_height=step):
            return GroundTransition.STEP_UP
        if is_landing(vertical_velocity=vy, feet_y=feet, ground_y=float(ground_y)):
            return GroundTransition.LAND
        if is_step_down(was_grounded=was_grounded, vertical_velocity=vy, height_diff=diff, step_height=step):
            return GroundTransition.STEP_DOWN
        return GroundTransition.AIRBORNE

    def apply(self, state: PlayerState, *, transition: GroundTransition, ground_y: float | None) -> None:
        if transition == GroundTransition.AIRBORNE or ground_y is None:
            state.mode = MotionMode.AIRBORNE
            return
        ground = float(ground_y)
        state.position.y = ground + float(self.tuning.body_height)
        state.velocity.y = 0.0
        state.mode = MotionMode.GROUNDED
        state.ground_height = ground

    def resolve(self, state: PlayerState, *, ground_y: float | None, was_grounded: bool) -> GroundTransition:
        transition = self.classify(state, ground_y=ground_y, was_grounded=was_grounded)
        self.apply(state, transition=transition, ground_y=ground_y)
        return transition
