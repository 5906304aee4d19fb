from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from panda3d.core import LVector3d

from ittycity.physics.spatial_query import RayHit, SpatialQuery, horizontal, unit_or_zero
from ittycity.physics.tuning import MovementTuning

logger = logging.getLogger(__name__)

_DOWN = LVector3d(0, -1, 0)


def safe_intersect(query: SpatialQuery, origin: LVector3d, direction: LVector3d, max_distance: float) -> list[RayHit]:
    # Query failures behave like empty space so movement keeps going.
    try:
        return list(query.intersect_ray(origin, direction, max_distance))
    except Exception:
        logger.exception("Spatial query failed")
        return []


@dataclass(frozen=True)
class Penetration:
    direction: LVector3d
    normal: LVector3d
    depth: float


class GroundProbe:
    """Downward ray for the first walkable surface under a query point."""

    def __init__(self, *, query: SpatialQuery, tuning: MovementTuning) -> None:
        self.query = query
        self.tuning = tuning

    def is_walkable(self, hit: RayHit) -> bool:
        if hit.normal is None:
            return True
        return float(hit.normal.y) > float(self.tuning.walkable_normal_y)

    def height_at(self, top: LVector3d) -> float | None:
        """Elevation of the first walkable surface at or below `top`, or None within probe depth."""

        lift = float(self.tuning.ground_probe_lift)
        origin = LVector3d(float(top.x), float(top.y) + lift, float(top.z))
        max_distance = lift + float(self.tuning.ground_probe_depth)
        for hit in safe_intersect(self.query, origin, _DOWN, max_distance):
            if self.is_walkable(hit):
                return float(hit.point.y)
        return None


class WallProbe:
    """
    Horizontal probes at several body heights.

    `resolve` clips a horizontal move against walls (slide), then pushes the result out
    of any wall closer than the collision radius (corner push-out).
    """

    def __init__(self, *, query: SpatialQuery, tuning: MovementTuning) -> None:
        self.query = query
        self.tuning = tuning

    def is_wall(self, hit: RayHit) -> bool:
        if hit.normal is None:
            return True
        return abs(float(hit.normal.y)) < float(self.tuning.wall_normal_y_max)

    def probe_heights(self) -> list[float]:
        """Ray heights above the feet, lowest first. The lowest stays above step height."""

        body = float(self.tuning.body_height)
        floor = float(self.tuning.step_height) + float(self.tuning.wall_probe_step_clearance)
        out: list[float] = []
        for frac in self.tuning.wall_probe_fractions:
            h = max(float(frac) * body, floor)
            if h not in out:
                out.append(h)
        out.sort()
        return out

    def nearest_wall(self, origin: LVector3d, direction: LVector3d, max_distance: float) -> tuple[RayHit, LVector3d] | None:
        for hit in safe_intersect(self.query, origin, direction, max_distance):
            if not self.is_wall(hit):
                continue
            n = unit_or_zero(horizontal(hit.normal)) if hit.normal is not None else LVector3d(0, 0, 0)
            if n.lengthSquared() <= 0.0:
                n = -direction
            return hit, n
        return None

    def resolve(self, from_pos: LVector3d, to_pos: LVector3d) -> LVector3d:
        move = horizontal(to_pos - from_pos)
        if move.length() < float(self.tuning.wall_probe_epsilon):
            return LVector3d(to_pos)

        radius = float(self.tuning.collision_radius)
        feet = float(to_pos.y) - float(self.tuning.body_height)
        heights = self.probe_heights()
        planes: list[LVector3d] = []

        for _ in range(max(1, int(self.tuning.slide_max_planes))):
            travel = move.length()
            if travel < float(self.tuning.wall_probe_epsilon):
                move = LVector3d(0, 0, 0)
                break
            direction = move / travel

            nearest: tuple[RayHit, LVector3d] | None = None
            for h in heights:
                origin = LVector3d(float(from_pos.x), feet + h, float(from_pos.z))
                found = self.nearest_wall(origin, direction, travel + radius)
                if found is None:
                    continue
                if nearest is None or found[0].distance < nearest[0].distance:
                    nearest = found
            if nearest is None:
                break

            n = nearest[1]
            into = move.dot(n)
            if into >= 0.0:
                break
            move = move - n * into
            planes.append(n)
            # Multi-plane clip: do not slide back into an earlier wall.
            for p in planes[:-1]:
                back = move.dot(p)
                if back < 0.0:
                    move = move - p * back

        resolved = LVector3d(float(from_pos.x) + float(move.x), float(to_pos.y), float(from_pos.z) + float(move.z))
        return self.push_out(resolved)

    def radial_penetrations(self, pos: LVector3d) -> list[Penetration]:
        """Walls closer than the collision radius around `pos`, probed at mid-body."""

        count = max(1, int(self.tuning.corner_probe_count))
        out: list[Penetration] = []
        for i in range(count):
            pen = self._penetration_at(pos, i, count)
            if pen is not None:
                out.append(pen)
        return out

    def push_out(self, pos: LVector3d) -> LVector3d:
        out = LVector3d(pos)
        skin = float(self.tuning.corner_push_skin)
        for _ in range(max(1, int(self.tuning.corner_push_passes))):
            pushed = False
            count = max(1, int(self.tuning.corner_probe_count))
            for i in range(count):
                # Re-probe from the current position after every push.
                pen = self._penetration_at(out, i, count)
                if pen is None:
                    continue
                out = out + pen.normal * (pen.depth + skin)
                pushed = True
            if not pushed:
                break
        return out

    def _penetration_at(self, pos: LVector3d, index: int, count: int) -> Penetration | None:
        radius = float(self.tuning.collision_radius)
        theta = (2.0 * math.pi * float(index)) / float(count)
        direction = LVector3d(math.sin(theta), 0.0, math.cos(theta))
        origin = LVector3d(float(pos.x), float(pos.y) - float(self.tuning.body_height) * 0.5, float(pos.z))
        found = self.nearest_wall(origin, direction, radius)
        if found is None:
            return None
        hit, n = found
        if hit.distance >= radius:
            return None
        # Perpendicular distance to the wall plane, not the slanted ray length.
        depth = radius - float(hit.distance) * abs(direction.dot(n))
        if depth <= 0.0:
            return None
        return Penetration(direction=direction, normal=n, depth=depth)
