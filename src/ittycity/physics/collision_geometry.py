from __future__ import annotations

import math
from dataclasses import dataclass

from panda3d.core import LVector3d

from ittycity.common.aabb import AABB
from ittycity.physics.spatial_query import RayHit, SpatialQuery

_PARALLEL_EPS = 1e-12


@dataclass(frozen=True)
class Triangle:
    p0: tuple[float, float, float]
    p1: tuple[float, float, float]
    p2: tuple[float, float, float]


class CollisionGeometry(SpatialQuery):
    """
    Append-only set of axis-aligned boxes and triangles with exact ray queries.

    Used for graybox scenes and spawned props. Rays that start inside a box ignore
    that box; triangles are double-sided.
    """

    def __init__(self, *, boxes: list[AABB] | None = None, triangles: list[list[float]] | None = None) -> None:
        self._boxes: list[AABB] = []
        self._triangles: list[Triangle] = []
        for box in boxes or []:
            self.add_box(box)
        if triangles:
            self.add_triangles(triangles)

    @property
    def boxes(self) -> list[AABB]:
        return list(self._boxes)

    @property
    def triangle_count(self) -> int:
        return len(self._triangles)

    def is_empty(self) -> bool:
        return not self._boxes and not self._triangles

    def add_box(self, box: AABB) -> int:
        self._boxes.append(box)
        return len(self._boxes) - 1

    def add_triangle(self, p0, p1, p2) -> None:
        self._triangles.append(
            Triangle(
                p0=(float(p0[0]), float(p0[1]), float(p0[2])),
                p1=(float(p1[0]), float(p1[1]), float(p1[2])),
                p2=(float(p2[0]), float(p2[1]), float(p2[2])),
            )
        )

    def add_triangles(self, triangles: list[list[float]]) -> int:
        added = 0
        for tri in triangles:
            if len(tri) != 9:
                continue
            self.add_triangle(tri[0:3], tri[3:6], tri[6:9])
            added += 1
        return added

    def intersect_ray(self, origin: LVector3d, direction: LVector3d, max_distance: float) -> list[RayHit]:
        o = (float(origin.x), float(origin.y), float(origin.z))
        d = (float(direction.x), float(direction.y), float(direction.z))
        max_t = float(max_distance)
        if max_t < 0.0:
            return []

        found: list[tuple[float, int, RayHit]] = []
        order = 0
        for box in self._boxes:
            hit = _ray_box(o, d, box, max_t)
            if hit is not None:
                found.append((hit.distance, order, hit))
            order += 1
        for tri in self._triangles:
            hit = _ray_triangle(o, d, tri, max_t)
            if hit is not None:
                found.append((hit.distance, order, hit))
            order += 1

        found.sort(key=lambda it: (it[0], it[1]))
        return [it[2] for it in found]


def _ray_box(o: tuple[float, float, float], d: tuple[float, float, float], box: AABB, max_t: float) -> RayHit | None:
    lo = (float(box.minimum.x), float(box.minimum.y), float(box.minimum.z))
    hi = (float(box.maximum.x), float(box.maximum.y), float(box.maximum.z))
    t_enter = -math.inf
    t_exit = math.inf
    enter_axis = -1
    enter_sign = 0.0

    for axis in range(3):
        if abs(d[axis]) < _PARALLEL_EPS:
            if o[axis] < lo[axis] or o[axis] > hi[axis]:
                return None
            continue
        t1 = (lo[axis] - o[axis]) / d[axis]
        t2 = (hi[axis] - o[axis]) / d[axis]
        if d[axis] > 0.0:
            t_near, t_far, sign = t1, t2, -1.0
        else:
            t_near, t_far, sign = t2, t1, 1.0
        if t_near > t_enter:
            t_enter = t_near
            enter_axis = axis
            enter_sign = sign
        if t_far < t_exit:
            t_exit = t_far
        if t_enter > t_exit:
            return None

    # Origin inside the box (or the ray never enters a face).
    if enter_axis < 0 or t_enter < 0.0 or t_enter > max_t:
        return None

    p = [o[0] + d[0] * t_enter, o[1] + d[1] * t_enter, o[2] + d[2] * t_enter]
    # Snap onto the entered face so ground heights come out exact.
    p[enter_axis] = lo[enter_axis] if enter_sign < 0.0 else hi[enter_axis]
    n = [0.0, 0.0, 0.0]
    n[enter_axis] = enter_sign
    return RayHit(
        distance=float(t_enter),
        point=LVector3d(p[0], p[1], p[2]),
        normal=LVector3d(n[0], n[1], n[2]),
        obj=box,
    )


def _ray_triangle(
    o: tuple[float, float, float],
    d: tuple[float, float, float],
    tri: Triangle,
    max_t: float,
) -> RayHit | None:
    # Moller-Trumbore, double-sided.
    p0, p1, p2 = tri.p0, tri.p1, tri.p2
    e1 = (p1[0] - p0[0], p1[1] - p0[1], p1[2] - p0[2])
    e2 = (p2[0] - p0[0], p2[1] - p0[1], p2[2] - p0[2])
    pv = _cross(d, e2)
    det = _dot(e1, pv)
    if abs(det) < _PARALLEL_EPS:
        return None
    inv_det = 1.0 / det
    tv = (o[0] - p0[0], o[1] - p0[1], o[2] - p0[2])
    u = _dot(tv, pv) * inv_det
    if u < 0.0 or u > 1.0:
        return None
    qv = _cross(tv, e1)
    v = _dot(d, qv) * inv_det
    if v < 0.0 or (u + v) > 1.0:
        return None
    t = _dot(e2, qv) * inv_det
    if t < 0.0 or t > max_t:
        return None

    n = _cross(e1, e2)
    n_len = math.sqrt(_dot(n, n))
    if n_len <= 0.0:
        return None
    n = (n[0] / n_len, n[1] / n_len, n[2] / n_len)
    if _dot(n, d) > 0.0:
        n = (-n[0], -n[1], -n[2])
    return RayHit(
        distance=float(t),
        point=LVector3d(o[0] + d[0] * t, o[1] + d[1] * t, o[2] + d[2] * t),
        normal=LVector3d(n[0], n[1], n[2]),
        obj=tri,
    )


def _cross(a: tuple[float, float, float], b: tuple[float, float, float]) -> tuple[float, float, float]:
    return (a[1] * b[2] - a[2] * b[1], a[2] * b[0] - a[0] * b[2], a[0] * b[1] - a[1] * b[0])


def _dot(a: tuple[float, float, float], b: tuple[float, float, float]) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]
