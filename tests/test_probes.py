from __future__ import annotations

from panda3d.core import LVector3d

from ittycity.common.aabb import AABB
from ittycity.physics.collision_geometry import CollisionGeometry
from ittycity.physics.probes import GroundProbe, WallProbe
from ittycity.physics.spatial_query import RayHit, SpatialQuery
from ittycity.physics.tuning import MovementTuning


def _box(mn, mx) -> AABB:
    return AABB(minimum=LVector3d(*mn), maximum=LVector3d(*mx))


class _FakeQuery(SpatialQuery):
    def __init__(self, hits: list[RayHit]) -> None:
        self.hits = hits
        self.calls = 0

    def intersect_ray(self, origin, direction, max_distance):
        self.calls += 1
        return [h for h in self.hits if h.distance <= max_distance]


class _BrokenQuery(SpatialQuery):
    def intersect_ray(self, origin, direction, max_distance):
        raise RuntimeError("backend gone")


def test_ground_probe_finds_box_top() -> None:
    geo = CollisionGeometry(boxes=[_box((-5, -1, -5), (5, 0.25, 5))])
    probe = GroundProbe(query=geo, tuning=MovementTuning())
    assert probe.height_at(LVector3d(0, 0.5, 0)) == 0.25
    assert probe.height_at(LVector3d(20, 0.5, 0)) is None


def test_ground_probe_skips_steep_surfaces() -> None:
    steep = RayHit(distance=0.2, point=LVector3d(0, 0.4, 0), normal=LVector3d(0.9, 0.3, 0.0))
    floor = RayHit(distance=0.6, point=LVector3d(0, 0.0, 0), normal=LVector3d(0, 1, 0))
    probe = GroundProbe(query=_FakeQuery([steep, floor]), tuning=MovementTuning())
    assert probe.height_at(LVector3d(0, 0.55, 0)) == 0.0


def test_ground_probe_accepts_hits_without_normal() -> None:
    hit = RayHit(distance=0.3, point=LVector3d(0, 0.2, 0), normal=None)
    probe = GroundProbe(query=_FakeQuery([hit]), tuning=MovementTuning())
    assert probe.height_at(LVector3d(0, 0.5, 0)) == 0.2


def test_query_failure_means_no_ground_and_no_wall() -> None:
    t = MovementTuning()
    assert GroundProbe(query=_BrokenQuery(), tuning=t).height_at(LVector3d(0, 1, 0)) is None

    walls = WallProbe(query=_BrokenQuery(), tuning=t)
    start = LVector3d(0, 1.7, 0)
    end = LVector3d(0.3, 1.7, -0.2)
    assert walls.resolve(start, end) == end


def test_probe_heights_stay_above_step_height() -> None:
    t = MovementTuning(body_height=1.0, step_height=0.5)
    heights = WallProbe(query=CollisionGeometry(), tuning=t).probe_heights()
    assert heights == sorted(heights)
    assert min(heights) >= t.step_height + t.wall_probe_step_clearance - 1e-12


def test_tiny_move_passes_through_unchanged() -> None:
    t = MovementTuning()
    probe = WallProbe(query=_FakeQuery([]), tuning=t)
    start = LVector3d(0, 1.7, 0)
    end = LVector3d(t.wall_probe_epsilon * 0.1, 1.7, 0)
    out = probe.resolve(start, end)
    assert out == end
    assert probe.query.calls == 0


def test_diagonal_move_slides_along_wall() -> None:
    geo = CollisionGeometry(boxes=[_box((1, 0, -5), (2, 3, 5))])
    probe = WallProbe(query=geo, tuning=MovementTuning())
    out = probe.resolve(LVector3d(0.5, 1.7, 0), LVector3d(1.0, 1.7, -0.5))
    assert abs(out.x - 0.5) < 1e-9
    assert abs(out.z + 0.5) < 1e-9
    assert out.y == 1.7


def test_head_on_move_is_stopped() -> None:
    geo = CollisionGeometry(boxes=[_box((1, 0, -5), (2, 3, 5))])
    probe = WallProbe(query=geo, tuning=MovementTuning())
    out = probe.resolve(LVector3d(0.5, 1.7, 0), LVector3d(1.0, 1.7, 0))
    assert abs(out.x - 0.5) < 1e-9
    assert abs(out.z) < 1e-9


def test_low_obstacle_is_not_a_wall() -> None:
    geo = CollisionGeometry(boxes=[_box((1, 0, -5), (2, 0.3, 5))])
    probe = WallProbe(query=geo, tuning=MovementTuning())
    out = probe.resolve(LVector3d(0.5, 1.7, 0), LVector3d(1.0, 1.7, 0))
    assert abs(out.x - 1.0) < 1e-9


def test_corner_push_out_clears_both_walls() -> None:
    t = MovementTuning()
    geo = CollisionGeometry(
        boxes=[
            _box((1, 0, -3), (2, 3, 1)),
            _box((-3, 0, -2), (2, 3, -1)),
        ]
    )
    probe = WallProbe(query=geo, tuning=t)
    start = LVector3d(0.8, 1.7, -0.8)
    assert len(probe.radial_penetrations(start)) >= 2

    out = probe.push_out(start)
    assert probe.radial_penetrations(out) == []
    assert abs(out.x - (1.0 - t.collision_radius - t.corner_push_skin)) < 1e-6
    assert abs(out.z - (-1.0 + t.collision_radius + t.corner_push_skin)) < 1e-6
    assert out.y == 1.7
