from __future__ import annotations

from panda3d.core import LVector3d

from ittycity.common.aabb import AABB
from ittycity.physics.collision_geometry import CollisionGeometry


def _box(mn, mx) -> AABB:
    return AABB(minimum=LVector3d(*mn), maximum=LVector3d(*mx))


def test_ray_hits_box_top_exactly() -> None:
    geo = CollisionGeometry(boxes=[_box((-1, 0, -1), (1, 0.3, 1))])
    hit = geo.cast_ray(LVector3d(0.2, 5, 0.1), LVector3d(0, -1, 0), 10.0)
    assert hit is not None
    assert hit.point.y == 0.3
    assert abs(hit.distance - 4.7) < 1e-12
    assert hit.normal == LVector3d(0, 1, 0)


def test_ray_respects_max_distance_and_misses() -> None:
    geo = CollisionGeometry(boxes=[_box((-1, 0, -1), (1, 1, 1))])
    assert geo.cast_ray(LVector3d(0, 5, 0), LVector3d(0, -1, 0), 3.0) is None
    assert geo.cast_ray(LVector3d(3, 5, 0), LVector3d(0, -1, 0), 10.0) is None


def test_ray_starting_inside_box_reports_nothing() -> None:
    geo = CollisionGeometry(boxes=[_box((-1, 0, -1), (1, 1, 1))])
    assert geo.intersect_ray(LVector3d(0, 0.5, 0), LVector3d(1, 0, 0), 5.0) == []


def test_hits_are_sorted_by_distance() -> None:
    geo = CollisionGeometry(
        boxes=[
            _box((-1, -1, -1), (1, 0, 1)),
            _box((-1, 2, -1), (1, 3, 1)),
        ]
    )
    hits = geo.intersect_ray(LVector3d(0, 10, 0), LVector3d(0, -1, 0), 20.0)
    assert [h.point.y for h in hits] == [3.0, 0.0]


def test_triangles_are_double_sided_and_normals_face_the_ray() -> None:
    geo = CollisionGeometry()
    assert geo.is_empty()
    added = geo.add_triangles([[-5, 0, -5, 5, 0, -5, 0, 0, 5], [1, 2, 3]])
    assert added == 1
    assert geo.triangle_count == 1

    down = geo.cast_ray(LVector3d(0, 2, 0), LVector3d(0, -1, 0), 5.0)
    assert down is not None
    assert abs(down.distance - 2.0) < 1e-9
    assert down.normal is not None and down.normal.y > 0.99

    up = geo.cast_ray(LVector3d(0, -2, 0), LVector3d(0, 1, 0), 5.0)
    assert up is not None
    assert up.normal is not None and up.normal.y < -0.99


def test_side_face_normal_points_back_at_the_ray() -> None:
    geo = CollisionGeometry()
    idx = geo.add_box(_box((1, 0, -5), (2, 3, 5)))
    assert idx == 0
    hit = geo.cast_ray(LVector3d(0, 1, 0), LVector3d(1, 0, 0), 5.0)
    assert hit is not None
    assert hit.normal == LVector3d(-1, 0, 0)
    assert hit.point.x == 1.0
