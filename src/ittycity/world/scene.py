from __future__ import annotations

import logging
from pathlib import Path

from panda3d.core import GeomVertexReader, LVector3d

from ittycity.common.aabb import AABB
from ittycity.game.coords import from_panda, triangles_from_panda
from ittycity.physics.collision_world import CollisionWorld

logger = logging.getLogger(__name__)

# Spawn sits this far in front of the model centre, along +Z (behind the camera's forward).
SPAWN_BACKOFF = 10.0


def block_transform(box: AABB) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Panda3D pos/scale that fit the 0..1 `models/box` unit cube onto a movement-frame box."""

    mn, mx = box.minimum, box.maximum
    pos = (float(mn.x), -float(mx.z), float(mn.y))
    scale = (
        max(1e-4, float(mx.x - mn.x)),
        max(1e-4, float(mx.z - mn.z)),
        max(1e-4, float(mx.y - mn.y)),
    )
    return pos, scale


def spawn_from_bounds(mn: LVector3d, mx: LVector3d, *, body_height: float) -> LVector3d:
    c = (mn + mx) * 0.5
    return LVector3d(float(c.x), float(c.y) + float(body_height), float(c.z) + SPAWN_BACKOFF)


def graybox_layout() -> list[tuple[AABB, tuple[float, float, float, float]]]:
    """Fallback scene: ground top at y=0, a low step, a ledge too tall to step, a corner and a stair run."""

    ground = (0.15, 0.17, 0.2, 1)
    stone = (0.35, 0.45, 0.55, 1)
    wall = (0.2, 0.52, 0.72, 1)
    stair = (0.45, 0.3, 0.18, 1)

    out: list[tuple[AABB, tuple[float, float, float, float]]] = [
        (AABB(minimum=LVector3d(-100, -2, -100), maximum=LVector3d(100, 0, 100)), ground),
        # Low step and tall ledge ahead of the spawn.
        (AABB(minimum=LVector3d(-4, 0, -8), maximum=LVector3d(-1, 0.3, -5)), stone),
        (AABB(minimum=LVector3d(1, 0, -8), maximum=LVector3d(4, 1.0, -5)), stone),
        # Two walls meeting at an inside corner.
        (AABB(minimum=LVector3d(6, 0, -14), maximum=LVector3d(7, 3, -4)), wall),
        (AABB(minimum=LVector3d(-2, 0, -15), maximum=LVector3d(7, 3, -14)), wall),
    ]
    for i in range(6):
        rise = 0.25 * (i + 1)
        z0 = -6.0 - i * 1.0
        out.append((AABB(minimum=LVector3d(-12, 0, z0 - 1.0), maximum=LVector3d(-8, rise, z0)), stair))
    return out


def extract_triangles(model) -> list[list[float]]:
    """World-space Panda3D (Z-up) triangles of every GeomNode under `model`, as 9-float rows."""

    tris: list[list[float]] = []
    for np in model.findAllMatches("**/+GeomNode"):
        mat = np.getMat(model)
        gnode = np.node()
        for gi in range(gnode.getNumGeoms()):
            geom = gnode.getGeom(gi)
            vdata = geom.getVertexData()
            for pi in range(geom.getNumPrimitives()):
                prim = geom.getPrimitive(pi).decompose()
                reader = GeomVertexReader(vdata, "vertex")
                for ti in range(prim.getNumPrimitives()):
                    start = prim.getPrimitiveStart(ti)
                    end = prim.getPrimitiveEnd(ti)
                    if end - start != 3:
                        continue
                    row: list[float] = []
                    for vi in range(start, end):
                        reader.setRow(prim.getVertex(vi))
                        p = mat.xformPoint(reader.getData3())
                        row.extend((float(p.x), float(p.y), float(p.z)))
                    tris.append(row)
    return tris


class WorldScene:
    """
    Visible world plus its collision set.

    `build` starts an asynchronous model load when a map path is given; until it
    finishes the caller keeps its placeholder ground. `on_ready(collision, spawn)`
    fires once with the new collision world and spawn point, either from the model
    or from the graybox fallback.
    """

    def __init__(self, *, body_height: float = 1.7) -> None:
        self.body_height = float(body_height)
        self.spawn_point = LVector3d(0.0, self.body_height, 0.0)
        self.collision: CollisionWorld | None = None
        self.aabbs: list[AABB] = []
        self.model_loaded = False
        self.fallback_used = False
        self._loader = None
        self._render = None
        self._on_ready = None
        self._model_np = None
        self._block_nodes: list[object] = []

    @property
    def ready(self) -> bool:
        return self.collision is not None

    def build(self, *, map_path: str | None, loader, render, on_ready=None) -> None:
        self._loader = loader
        self._render = render
        self._on_ready = on_ready

        if not map_path:
            self._build_graybox_scene()
            return

        path = Path(str(map_path)).expanduser()
        if not path.exists():
            logger.warning("Map %s not found; using the fallback scene", path)
            self._build_graybox_scene()
            return

        logger.info("Loading map %s", path)
        try:
            loader.loadModel(str(path), callback=self._on_model_loaded)
        except Exception as e:
            logger.warning("Map load failed to start (%s); using the fallback scene", e)
            self._build_graybox_scene()

    def _on_model_loaded(self, model) -> None:
        if model is None or model.isEmpty():
            logger.warning("Map model failed to load; using the fallback scene")
            self._build_graybox_scene()
            return
        try:
            self._attach_model(model)
        except Exception as e:
            logger.exception("Map model could not be prepared for collision: %s", e)
            self._build_graybox_scene()

    def _attach_model(self, model) -> None:
        model.reparentTo(self._render)
        self._model_np = model

        triangles = triangles_from_panda(extract_triangles(model))
        world = CollisionWorld(triangles=triangles)
        if world.is_empty():
            raise ValueError("map model has no triangle geometry")

        bounds = model.getTightBounds()
        if bounds:
            a, b = from_panda(bounds[0]), from_panda(bounds[1])
            mn = LVector3d(min(a.x, b.x), min(a.y, b.y), min(a.z, b.z))
            mx = LVector3d(max(a.x, b.x), max(a.y, b.y), max(a.z, b.z))
            self.spawn_point = spawn_from_bounds(mn, mx, body_height=self.body_height)

        self.model_loaded = True
        logger.info("Map ready: %d collision triangles", world.triangle_count)
        self._finish(world)

    def _build_graybox_scene(self) -> None:
        self.fallback_used = True
        self.aabbs = []
        for box, color in graybox_layout():
            self._add_block(box=box, color=color)
        self.spawn_point = LVector3d(0.0, self.body_height, 0.0)
        self._finish(CollisionWorld(aabbs=list(self.aabbs)))

    def _add_block(self, *, box: AABB, color) -> int:
        model = self._loader.loadModel("models/box")
        model.reparentTo(self._render)
        pos, scale = block_transform(box)
        model.setPos(*pos)
        model.setScale(*scale)
        model.setColor(*color)
        self._block_nodes.append(model)
        self.aabbs.append(box)
        return len(self.aabbs) - 1

    def _finish(self, world: CollisionWorld) -> None:
        self.collision = world
        if self._on_ready is not None:
            self._on_ready(world, LVector3d(self.spawn_point))
