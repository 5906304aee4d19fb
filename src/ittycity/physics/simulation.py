from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from panda3d.core import LVector3d

from ittycity.camera.rig import CameraPose, CameraRig, make_rig
from ittycity.physics.motion.intent import InputState
from ittycity.physics.motion.state import MotionMode, PlayerState
from ittycity.physics.player_controller import PlayerController, StepReport
from ittycity.physics.spatial_query import FlatGroundQuery, SpatialQuery
from ittycity.physics.tuning import MovementTuning

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Teleport:
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class Look:
    rx: float
    ry: float


@dataclass(frozen=True)
class Rotate:
    angle: float


StateOverwrite = Teleport | Look | Rotate


@dataclass(frozen=True)
class FrameResult:
    step: StepReport
    camera: CameraPose
    applied_overwrites: int = 0


@dataclass
class SimulationContext:
    """Everything one frame step mutates. The frame loop is the only writer."""

    tuning: MovementTuning
    player: PlayerState
    rig: CameraRig
    controller: PlayerController
    query: SpatialQuery
    pending: deque[StateOverwrite] = field(default_factory=deque)
    last_camera: CameraPose | None = None

    def camera_yaw(self) -> float:
        return float(self.rig.yaw)

    def queue(self, overwrite: StateOverwrite) -> None:
        self.pending.append(overwrite)

    def set_geometry(self, query: SpatialQuery | None) -> None:
        """Swap in a whole collision set; an empty one falls back to the flat ground plane."""

        effective = query if query is not None and not query.is_empty() else FlatGroundQuery()
        self.query = effective
        self.controller.set_query(effective)

    def set_spawn(self, spawn: LVector3d, *, respawn: bool = True) -> None:
        self.controller.spawn_point = LVector3d(spawn)
        if respawn:
            self.controller.respawn(self.player)
            self.rig.reset()


def make_context(
    *,
    tuning: MovementTuning | None = None,
    query: SpatialQuery | None = None,
    spawn_point: LVector3d | None = None,
    first_person: bool = False,
) -> SimulationContext:
    t = tuning or MovementTuning()
    spawn = LVector3d(spawn_point) if spawn_point is not None else LVector3d(0.0, float(t.body_height), 0.0)
    effective = query if query is not None and not query.is_empty() else FlatGroundQuery()
    player = PlayerState(position=LVector3d(spawn))
    controller = PlayerController(tuning=t, query=effective, spawn_point=spawn)
    return SimulationContext(
        tuning=t,
        player=player,
        rig=make_rig(tuning=t, first_person=first_person),
        controller=controller,
        query=effective,
    )


def apply_overwrite(ctx: SimulationContext, overwrite: StateOverwrite) -> None:
    if isinstance(overwrite, Teleport):
        ctx.player.position = LVector3d(float(overwrite.x), float(overwrite.y), float(overwrite.z))
        ctx.player.velocity = LVector3d(0, 0, 0)
        ctx.player.mode = MotionMode.AIRBORNE
        ctx.rig.reset()
        return
    if isinstance(overwrite, Look):
        # rx is the view pitch (positive looks up), ry the yaw; both rigs share that meaning.
        ctx.rig.set_view(yaw=float(overwrite.ry), pitch=float(overwrite.rx))
        return
    if isinstance(overwrite, Rotate):
        ctx.player.yaw = float(overwrite.angle)
        return
    logger.warning("Ignoring unknown state overwrite: %r", overwrite)


def apply_pending(ctx: SimulationContext) -> int:
    applied = 0
    while ctx.pending:
        apply_overwrite(ctx, ctx.pending.popleft())
        applied += 1
    return applied


def step_frame(ctx: SimulationContext, intent: InputState, dt: float) -> FrameResult:
    """Pending overwrites, look/zoom, movement, collision, then the camera pose for this frame."""

    applied = apply_pending(ctx)

    if intent.look_dx or intent.look_dy:
        ctx.rig.apply_look(dx=float(intent.look_dx), dy=float(intent.look_dy))
    if intent.zoom_steps:
        ctx.rig.apply_zoom(int(intent.zoom_steps))

    report = ctx.controller.step(ctx.player, intent=intent, camera_yaw=ctx.camera_yaw(), dt=dt)
    if report.recovered:
        logger.info("Player fell below %.1f; recovered above spawn", float(ctx.tuning.abyss_y))
        ctx.rig.reset()

    pose = ctx.rig.update(ctx.player, dt=ctx.controller.solver.clamp_dt(dt))
    ctx.last_camera = pose
    return FrameResult(step=report, camera=pose, applied_overwrites=applied)


def snapshot(ctx: SimulationContext) -> dict:
    """Plain-data view of the player and camera for the remote-control channel."""

    p = ctx.player.position
    cam = ctx.last_camera.position if ctx.last_camera is not None else p
    return {
        "position": {"x": float(p.x), "y": float(p.y), "z": float(p.z)},
        "rotation": float(ctx.player.yaw),
        "camera": {
            "x": float(cam.x),
            "y": float(cam.y),
            "z": float(cam.z),
            "rx": float(ctx.rig.view_pitch),
            "ry": float(ctx.rig.orbit.yaw),
        },
    }
