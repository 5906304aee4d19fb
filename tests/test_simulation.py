from __future__ import annotations

import pytest
from panda3d.core import LVector3d

from ittycity.common.aabb import AABB
from ittycity.physics.collision_geometry import CollisionGeometry
from ittycity.physics.motion.intent import InputState
from ittycity.physics.motion.state import MotionMode
from ittycity.physics.simulation import Look, Rotate, Teleport, make_context, snapshot, step_frame
from ittycity.physics.spatial_query import FlatGroundQuery

DT = 1.0 / 60.0


def test_default_context_walks_on_flat_ground() -> None:
    ctx = make_context()
    assert isinstance(ctx.query, FlatGroundQuery)
    for _ in range(60):
        step_frame(ctx, InputState(forward=True), DT)
    assert abs(ctx.player.position.z + 5.0) < 1e-6
    assert ctx.player.position.y == 1.7


def test_camera_yaw_steers_movement() -> None:
    ctx = make_context()
    ctx.rig.set_angles(yaw=0.5, pitch=0.0)
    step_frame(ctx, InputState(forward=True), 0.1)
    p = ctx.player.position
    assert p.x < 0.0 and p.z < 0.0


def test_teleport_applies_before_the_next_step() -> None:
    ctx = make_context()
    step_frame(ctx, InputState(), DT)
    ctx.queue(Teleport(x=3.0, y=10.0, z=-4.0))
    assert ctx.player.position.x == 0.0

    result = step_frame(ctx, InputState(), DT)
    assert result.applied_overwrites == 1
    assert ctx.player.position.x == 3.0
    assert ctx.player.position.z == -4.0
    assert 9.0 < ctx.player.position.y < 10.0
    assert ctx.player.mode is MotionMode.AIRBORNE
    assert not ctx.pending


def test_last_overwrite_wins() -> None:
    ctx = make_context()
    ctx.queue(Teleport(x=1.0, y=1.7, z=0.0))
    ctx.queue(Teleport(x=2.0, y=1.7, z=0.0))
    step_frame(ctx, InputState(), DT)
    assert ctx.player.position.x == 2.0


def test_look_and_rotate_overwrites() -> None:
    ctx = make_context()
    ctx.queue(Look(rx=0.2, ry=1.0))
    ctx.queue(Rotate(angle=2.5))
    step_frame(ctx, InputState(), DT)
    assert abs(ctx.rig.orbit.yaw - 1.0) < 1e-12
    assert abs(ctx.rig.view_pitch - 0.2) < 1e-12
    # Looking up puts the orbit camera below its target.
    assert abs(ctx.rig.orbit.pitch + 0.2) < 1e-12
    assert ctx.player.yaw == 2.5

    ctx.queue(Look(rx=-5.0, ry=0.0))
    step_frame(ctx, InputState(), DT)
    assert ctx.rig.orbit.pitch == ctx.tuning.camera_pitch_max


@pytest.mark.parametrize("first_person", [False, True])
def test_look_pitch_means_the_same_in_both_camera_modes(first_person: bool) -> None:
    ctx = make_context(first_person=first_person)
    ctx.queue(Look(rx=0.2, ry=0.0))
    result = step_frame(ctx, InputState(), DT)
    pose = result.camera
    assert pose.target.y > pose.position.y
    assert abs(snapshot(ctx)["camera"]["rx"] - 0.2) < 1e-12

    ctx.queue(Look(rx=-0.2, ry=0.0))
    pose = step_frame(ctx, InputState(), DT).camera
    # The orbit camera eases toward its new spot; the aim flips at once in first person.
    if first_person:
        assert pose.target.y < pose.position.y
    assert abs(snapshot(ctx)["camera"]["rx"] + 0.2) < 1e-12


def test_look_input_and_zoom_flow_into_the_rig() -> None:
    ctx = make_context()
    step_frame(ctx, InputState(look_dx=50.0, zoom_steps=1), DT)
    assert ctx.rig.yaw < 0.0
    assert ctx.rig.orbit.distance < ctx.tuning.camera_distance


def test_set_geometry_falls_back_to_flat_ground() -> None:
    ctx = make_context()
    ctx.set_geometry(CollisionGeometry())
    assert isinstance(ctx.query, FlatGroundQuery)
    ctx.set_geometry(None)
    assert isinstance(ctx.query, FlatGroundQuery)

    geo = CollisionGeometry(boxes=[AABB(minimum=LVector3d(-5, -1, -5), maximum=LVector3d(5, 2, 5))])
    ctx.set_geometry(geo)
    assert ctx.query is geo
    assert ctx.controller.query is geo

    ctx.set_spawn(LVector3d(0, 3.7, 0))
    for _ in range(10):
        step_frame(ctx, InputState(), DT)
    assert abs(ctx.player.position.y - 3.7) < 1e-9


def test_snapshot_shape() -> None:
    ctx = make_context()
    step_frame(ctx, InputState(), DT)
    snap = snapshot(ctx)
    assert set(snap.keys()) == {"position", "rotation", "camera"}
    assert set(snap["position"].keys()) == {"x", "y", "z"}
    assert set(snap["camera"].keys()) == {"x", "y", "z", "rx", "ry"}
    assert snap["position"]["y"] == 1.7
    assert snap["camera"]["z"] > 0.0
