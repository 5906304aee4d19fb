from __future__ import annotations

import math

from panda3d.core import LVector3d

from ittycity.camera.rig import FirstPersonRig, OrbitCameraRig, make_rig, smoothing_factor
from ittycity.physics.motion.state import PlayerState
from ittycity.physics.tuning import MovementTuning


def _player(x: float = 0.0, y: float = 1.7, z: float = 0.0) -> PlayerState:
    return PlayerState(position=LVector3d(x, y, z))


def test_orbit_sits_behind_player_at_zero_yaw() -> None:
    t = MovementTuning()
    rig = OrbitCameraRig(tuning=t)
    pose = rig.update(_player(), dt=1.0 / 60.0)
    # First frame snaps to the orbit point.
    assert abs(pose.position.x) < 1e-9
    assert abs(pose.position.y - (1.7 + t.camera_target_offset_y)) < 1e-9
    assert abs(pose.position.z - t.camera_distance) < 1e-9
    assert abs(pose.target.y - (1.7 + t.camera_target_offset_y)) < 1e-9


def test_orbit_eases_toward_moving_player() -> None:
    rig = OrbitCameraRig(tuning=MovementTuning())
    rig.update(_player(), dt=1.0 / 60.0)
    pose = rig.update(_player(z=-2.0), dt=1.0 / 60.0)
    desired = rig.desired_position(_player(z=-2.0))
    assert desired.z < pose.position.z < 5.0
    assert abs(pose.target.z + 2.0) < 1e-9


def test_orbit_reset_snaps_again() -> None:
    rig = OrbitCameraRig(tuning=MovementTuning())
    rig.update(_player(), dt=1.0 / 60.0)
    rig.reset()
    pose = rig.update(_player(x=10.0), dt=1.0 / 60.0)
    assert abs(pose.position.x - 10.0) < 1e-9


def test_orbit_look_and_pitch_limits() -> None:
    t = MovementTuning()
    rig = OrbitCameraRig(tuning=t)
    rig.apply_look(dx=100.0, dy=0.0)
    assert abs(rig.yaw + 100.0 * t.mouse_sensitivity) < 1e-12

    rig.apply_look(dx=0.0, dy=1e6)
    assert rig.orbit.pitch == t.camera_pitch_max
    rig.apply_look(dx=0.0, dy=-1e6)
    assert rig.orbit.pitch == t.camera_pitch_min


def test_orbit_zoom_limits() -> None:
    t = MovementTuning()
    rig = OrbitCameraRig(tuning=t)
    rig.apply_zoom(2)
    assert abs(rig.orbit.distance - (t.camera_distance - 2 * t.camera_zoom_step)) < 1e-12
    rig.apply_zoom(100)
    assert rig.orbit.distance == t.camera_min_distance
    rig.apply_zoom(-100)
    assert rig.orbit.distance == t.camera_max_distance


def test_first_person_looks_down_negative_z() -> None:
    rig = FirstPersonRig(tuning=MovementTuning())
    f = rig.forward()
    assert abs(f.x) < 1e-12 and abs(f.y) < 1e-12 and abs(f.z + 1.0) < 1e-12

    pose = rig.update(_player(3.0, 1.7, 4.0), dt=1.0 / 60.0)
    assert pose.position == LVector3d(3.0, 1.7, 4.0)
    assert abs(pose.target.z - 3.0) < 1e-12


def test_first_person_pitch_clamps_at_vertical() -> None:
    t = MovementTuning()
    rig = FirstPersonRig(tuning=t)
    # Mouse moving down (positive dy) looks down.
    rig.apply_look(dx=0.0, dy=10.0)
    assert rig.orbit.pitch < 0.0
    rig.apply_look(dx=0.0, dy=1e6)
    assert rig.orbit.pitch == -math.pi * 0.5
    rig.set_angles(yaw=0.0, pitch=5.0)
    assert rig.orbit.pitch == math.pi * 0.5


def test_make_rig_and_smoothing() -> None:
    t = MovementTuning()
    assert make_rig(tuning=t, first_person=True).first_person is True
    assert make_rig(tuning=t, first_person=False).first_person is False
    assert smoothing_factor(smoothness=10.0, dt=0.0) == 0.0
    assert 0.0 < smoothing_factor(smoothness=10.0, dt=1.0 / 60.0) < 1.0
