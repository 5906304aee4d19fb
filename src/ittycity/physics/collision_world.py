from __future__ import annotations

from panda3d.bullet import (
    BulletBoxShape,
    BulletRigidBodyNode,
    BulletTriangleMesh,
    BulletTriangleMeshShape,
    BulletWorld,
)
from panda3d.core import BitMask32, LVector3d, LVector3f, Point3, TransformState

from ittycity.common.aabb import AABB
from ittycity.physics.spatial_query import RayHit, SpatialQuery


class CollisionWorld(SpatialQuery):
    """Bullet world holding static scene bodies, queried with rays in the movement frame (Y-up)."""

    def __init__(self, *, aabbs: list[AABB] | None = None, triangles: list[list[float]] | None = None) -> None:
        self._bworld = BulletWorld()
        # Nothing is simulated; the world only answers ray queries.
        self._bworld.setGravity(LVector3f(0, 0, 0))
        self._static_bodies: list[BulletRigidBodyNode] = []
        self._triangle_count = 0

        if triangles:
            self.add_triangles(triangles)
        for box in aabbs or []:
            self.add_box(box)

    @property
    def body_count(self) -> int:
        return len(self._static_bodies)

    @property
    def triangle_count(self) -> int:
        return int(self._triangle_count)

    def is_empty(self) -> bool:
        return not self._static_bodies

    def add_triangles(self, triangles: list[list[float]]) -> int:
        tri_mesh = BulletTriangleMesh()
        added = 0
        for tri in triangles:
            if len(tri) != 9:
                continue
            p0 = Point3(float(tri[0]), float(tri[1]), float(tri[2]))
            p1 = Point3(float(tri[3]), float(tri[4]), float(tri[5]))
            p2 = Point3(float(tri[6]), float(tri[7]), float(tri[8]))
            tri_mesh.addTriangle(p0, p1, p2, False)
            added += 1
        if added == 0:
            return 0

        shape = BulletTriangleMeshShape(tri_mesh, dynamic=False)
        body = BulletRigidBodyNode("static-triangle-mesh")
        body.setMass(0.0)
        body.addShape(shape)
        self._bworld.attachRigidBody(body)
        self._static_bodies.append(body)
        self._triangle_count += added
        return added

    def add_box(self, box: AABB) -> int:
        half = box.half_extents()
        center = box.center()
        shape = BulletBoxShape(LVector3f(float(half.x), float(half.y), float(half.z)))
        body = BulletRigidBodyNode("static-box")
        body.setMass(0.0)
        body.addShape(shape, TransformState.makePos(Point3(float(center.x), float(center.y), float(center.z))))
        self._bworld.attachRigidBody(body)
        self._static_bodies.append(body)
        return len(self._static_bodies) - 1

    def intersect_ray(self, origin: LVector3d, direction: LVector3d, max_distance: float) -> list[RayHit]:
        length = float(max_distance)
        if length <= 0.0 or direction.lengthSquared() <= 1e-24:
            return []
        d = LVector3d(direction)
        d.normalize()
        end = origin + d * length
        result = self._bworld.rayTestAll(
            Point3(float(origin.x), float(origin.y), float(origin.z)),
            Point3(float(end.x), float(end.y), float(end.z)),
            BitMask32.allOn(),
        )
        if not result.hasHits():
            return []

        hits: list[RayHit] = []
        for h in result.getHits():
            frac = float(h.getHitFraction())
            hp = h.getHitPos()
            hn = h.getHitNormal()
            normal = LVector3d(float(hn.x), float(hn.y), float(hn.z))
            if normal.lengthSquared() <= 1e-12:
                normal = None
            else:
                normal.normalize()
                if normal.dot(d) > 0.0:
                    normal = -normal
            hits.append(
                RayHit(
                    distance=frac * length,
                    point=LVector3d(float(hp.x), float(hp.y), float(hp.z)),
                    normal=normal,
                    obj=h.getNode(),
                )
            )
        hits.sort(key=lambda hit: hit.distance)
        return hits
