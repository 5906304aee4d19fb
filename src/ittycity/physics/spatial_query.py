from __future__ import annotations

from dataclasses import dataclass

from panda3d.core import LVector3d


@dataclass(frozen=True)
class RayHit:
    distance: float
    point: LVector3d
    # None when the backend cannot supply a surface normal (simplified collision geometry).
    normal: LVector3d | None
    obj: object | None = None


class SpatialQuery:
    """
    Ray queries over a collision geometry set.

    Implementations only need `intersect_ray`; hits must be sorted by distance and
    normals (when present) must face the ray origin.
    """

    def intersect_ray(self, origin: LVector3d, direction: LVector3d, max_distance: float) -> list[RayHit]:
        raise NotImplementedError

    def cast_ray(self, origin: LVector3d, direction: LVector3d, max_distance: float) -> RayHit | None:
        hits = self.intersect_ray(origin, direction, max_distance)
        return hits[0] if hits else None

    def is_empty(self) -> bool:
        return False


class FlatGroundQuery(SpatialQuery):
    """Infinite horizontal plane; stands in while no collision geometry is loaded."""

    def __init__(self, *, height: float = 0.0) -> None:
        self.height = float(height)

    def intersect_ray(self, origin: LVector3d, direction: LVector3d, max_distance: float) -> list[RayHit]:
        dy = float(direction.y)
        if dy >= -1e-12:
            return []
        t = (self.height - float(origin.y)) / dy
        if t < 0.0 or t > float(max_distance):
            return []
        point = LVector3d(float(origin.x) + float(direction.x) * t, self.height, float(origin.z) + float(direction.z) * t)
        return [RayHit(distance=t, point=point, normal=LVector3d(0, 1, 0), obj=self)]


def horizontal(vec: LVector3d) -> LVector3d:
    return LVector3d(float(vec.x), 0.0, float(vec.z))


def unit_or_zero(vec: LVector3d) -> LVector3d:
    out = LVector3d(vec)
    if out.lengthSquared() <= 1e-24:
        return LVector3d(0, 0, 0)
    out.normalize()
    return out
