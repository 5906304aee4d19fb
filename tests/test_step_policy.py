from __future__ import annotations

from panda3d.core import LVector3d

from ittycity.physics.motion.state import MotionMode, PlayerState
from ittycity.physics.step_policy import (
    GroundTransition,
    StepPolicy,
    is_landing,
    is_step_down,
    is_step_up,
    is_too_tall,
)
from ittycity.physics.tuning import MovementTuning


def test_guards() -> None:
    assert is_step_up(was_grounded=True, height_diff=0.3, step_height=0.5)
    assert is_step_up(was_grounded=True, height_diff=0.5, step_height=0.5)
    assert not is_step_up(was_grounded=True, height_diff=0.0, step_height=0.5)
    assert not is_step_up(was_grounded=False, height_diff=0.3, step_height=0.5)
    assert not is_step_up(was_grounded=True, height_diff=0.6, step_height=0.5)

    assert is_landing(vertical_velocity=-1.0, feet_y=-0.01, ground_y=0.0)
    assert not is_landing(vertical_velocity=1.0, feet_y=-0.01, ground_y=0.0)
    assert not is_landing(vertical_velocity=-1.0, feet_y=0.2, ground_y=0.0)

    assert is_step_down(was_grounded=True, vertical_velocity=-0.3, height_diff=-0.4, step_height=0.5)
    assert not is_step_down(was_grounded=True, vertical_velocity=-0.3, height_diff=-0.6, step_height=0.5)
    assert not is_step_down(was_grounded=False, vertical_velocity=-0.3, height_diff=-0.4, step_height=0.5)

    assert is_too_tall(was_grounded=True, height_diff=0.8, feet_y=0.0, ground_y=0.8, step_height=0.5)
    assert not is_too_tall(was_grounded=False, height_diff=0.8, feet_y=0.0, ground_y=0.8, step_height=0.5)


def test_no_ground_is_airborne() -> None:
    policy = StepPolicy(tuning=MovementTuning())
    st = PlayerState(position=LVector3d(0, 1.7, 0), mode=MotionMode.GROUNDED)
    assert policy.resolve(st, ground_y=None, was_grounded=True) is GroundTransition.AIRBORNE
    assert st.mode is MotionMode.AIRBORNE


def test_step_up_snaps_to_new_ground() -> None:
    t = MovementTuning()
    policy = StepPolicy(tuning=t)
    st = PlayerState(position=LVector3d(0, 1.7, 0), velocity=LVector3d(0, -0.3, 0), mode=MotionMode.GROUNDED)
    assert policy.resolve(st, ground_y=0.3, was_grounded=True) is GroundTransition.STEP_UP
    assert abs(st.position.y - (0.3 + t.body_height)) < 1e-12
    assert st.velocity.y == 0.0
    assert st.ground_height == 0.3
    assert st.on_ground


def test_rising_player_above_ground_stays_airborne() -> None:
    policy = StepPolicy(tuning=MovementTuning())
    st = PlayerState(position=LVector3d(0, 2.5, 0), velocity=LVector3d(0, 4.0, 0))
    assert policy.resolve(st, ground_y=0.0, was_grounded=False) is GroundTransition.AIRBORNE
    assert st.position.y == 2.5


def test_landing_clears_vertical_velocity() -> None:
    policy = StepPolicy(tuning=MovementTuning())
    st = PlayerState(position=LVector3d(0, 1.69, 0), velocity=LVector3d(0, -6.0, 0))
    assert policy.resolve(st, ground_y=0.0, was_grounded=False) is GroundTransition.LAND
    assert st.position.y == 1.7
    assert st.velocity.y == 0.0


def test_walking_off_a_small_drop_keeps_ground_contact() -> None:
    policy = StepPolicy(tuning=MovementTuning())
    st = PlayerState(
        position=LVector3d(0, 1.99, 0),
        velocity=LVector3d(0, -0.3, 0),
        mode=MotionMode.GROUNDED,
        ground_height=0.3,
    )
    assert policy.resolve(st, ground_y=0.0, was_grounded=True) is GroundTransition.STEP_DOWN
    assert st.position.y == 1.7
    assert st.ground_height == 0.0
