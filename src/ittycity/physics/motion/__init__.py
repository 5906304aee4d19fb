"""Movement state, input intent and the kinematic integrator."""

from ittycity.physics.motion.intent import InputState
from ittycity.physics.motion.solver import MotionSolver, MotionStep
from ittycity.physics.motion.state import CameraOrbit, MotionMode, PlayerState

__all__ = [
    "CameraOrbit",
    "InputState",
    "MotionMode",
    "MotionSolver",
    "MotionStep",
    "PlayerState",
]
