from __future__ import annotations

from dataclasses import dataclass

from panda3d.core import LVector3d

from ittycity.physics.motion.intent import InputState
from ittycity.physics.motion.solver import MotionSolver
from ittycity.physics.motion.state import MotionMode, PlayerState
from ittycity.physics.probes import GroundProbe, WallProbe
from ittycity.physics.spatial_query import SpatialQuery, horizontal
from ittycity.physics.step_policy import GroundTransition, StepPolicy, is_too_tall
from ittycity.physics.tuning import MovementTuning


@dataclass(frozen=True)
class StepReport:
    transition: GroundTransition | None
    ground_y: float | None
    blocked_by_ledge: bool = False
    recovered: bool = False


class PlayerController:
    """
    One movement step for a single body: integrate, clip against walls, resolve ground.

    The controller never owns the PlayerState; callers pass it in each frame.
    """

    def __init__(self, *, tuning: MovementTuning, query: SpatialQuery, spawn_point: LVector3d) -> None:
        self.tuning = tuning
        self.spawn_point = LVector3d(spawn_point)
        self.solver = MotionSolver(tuning=tuning)
        self.policy = StepPolicy(tuning=tuning)
        self.set_query(query)

    def set_query(self, query: SpatialQuery) -> None:
        self.query = query
        self.ground = GroundProbe(query=query, tuning=self.tuning)
        self.walls = WallProbe(query=query, tuning=self.tuning)

    def respawn(self, state: PlayerState) -> None:
        state.position = LVector3d(self.spawn_point)
        state.velocity = LVector3d(0, 0, 0)
        state.mode = MotionMode.AIRBORNE

    def recover(self, state: PlayerState) -> None:
        state.position = LVector3d(self.spawn_point) + LVector3d(0.0, float(self.tuning.recovery_height), 0.0)
        state.velocity = LVector3d(0, 0, 0)
        state.mode = MotionMode.AIRBORNE

    def step(self, state: PlayerState, *, intent: InputState, camera_yaw: float, dt: float) -> StepReport:
        prev_pos = LVector3d(state.position)
        motion = self.solver.integrate(state, intent=intent, camera_yaw=camera_yaw, dt=dt)
        if motion.dt <= 0.0:
            return StepReport(transition=None, ground_y=None)

        # A jump this frame already cleared the grounded flag.
        was_grounded = state.on_ground
        body = float(self.tuning.body_height)

        from_pos = LVector3d(float(prev_pos.x), float(state.position.y), float(prev_pos.z))
        resolved = self.walls.resolve(from_pos, from_pos + motion.displacement)
        state.position.x = float(resolved.x)
        state.position.z = float(resolved.z)

        # Window starts above the higher of last/current feet so a fast fall cannot skip the floor.
        # Its top meets the lowest wall ray: anything lower is ground, anything higher is wall.
        feet = state.feet_y(body)
        top_y = max(float(prev_pos.y) - body, feet) + min(self.walls.probe_heights())
        ground_y = self.ground.height_at(LVector3d(float(state.position.x), top_y, float(state.position.z)))

        blocked = False
        if ground_y is not None and self._too_tall(state, ground_y=ground_y, feet=feet, was_grounded=was_grounded):
            blocked = True
            ground_y = self._slide_along_ledge(
                state, from_pos=from_pos, ledge_y=float(ground_y), top_y=top_y, feet=feet, was_grounded=was_grounded
            )

        transition = self.policy.resolve(state, ground_y=ground_y, was_grounded=was_grounded)

        recovered = False
        if float(state.position.y) < float(self.tuning.abyss_y):
            self.recover(state)
            recovered = True
        return StepReport(transition=transition, ground_y=ground_y, blocked_by_ledge=blocked, recovered=recovered)

    def _too_tall(self, state: PlayerState, *, ground_y: float, feet: float, was_grounded: bool) -> bool:
        return is_too_tall(
            was_grounded=was_grounded,
            height_diff=float(ground_y) - float(state.ground_height),
            feet_y=feet,
            ground_y=float(ground_y),
            step_height=float(self.tuning.step_height),
        )

    def _slide_along_ledge(
        self, state: PlayerState, *, from_pos: LVector3d, ledge_y: float, top_y: float, feet: float, was_grounded: bool
    ) -> float | None:
        """
        Treat a too-tall ledge edge as a wall: keep the part of the move along the edge.

        The edge is found with a horizontal ray just under the ledge top. When there is
        no edge to slide on, or the slide still ends on the ledge, the move is dropped.
        Returns the ground height under the final position.
        """

        move = horizontal(state.position - from_pos)
        travel = move.length()
        slid: LVector3d | None = None
        if travel > float(self.tuning.wall_probe_epsilon):
            direction = move / travel
            origin = LVector3d(float(from_pos.x), ledge_y - float(self.tuning.ledge_probe_drop), float(from_pos.z))
            found = self.walls.nearest_wall(origin, direction, travel + float(self.tuning.collision_radius))
            if found is not None:
                n = found[1]
                into = move.dot(n)
                if into < 0.0:
                    edge_move = move - n * into
                    slid = self.walls.resolve(from_pos, from_pos + edge_move)

        if slid is not None:
            ground_y = self.ground.height_at(LVector3d(float(slid.x), top_y, float(slid.z)))
            if ground_y is None or not self._too_tall(state, ground_y=ground_y, feet=feet, was_grounded=was_grounded):
                state.position.x = float(slid.x)
                state.position.z = float(slid.z)
                return ground_y

        state.position.x = float(from_pos.x)
        state.position.z = float(from_pos.z)
        return self.ground.height_at(LVector3d(float(from_pos.x), top_y, float(from_pos.z)))
