from __future__ import annotations

import logging
import random

from panda3d.core import LVector3d, LVector4f, PointLight

from ittycity.common.aabb import AABB
from ittycity.game.coords import to_panda

logger = logging.getLogger(__name__)

PROP_CUBE = "cube"
PROP_SPHERE = "sphere"
PROP_LIGHT = "light"

CUBE_HALF = 0.5
SPHERE_RADIUS = 0.5
LIGHT_RANGE = 20.0


def prop_collision_box(kind: str, position: LVector3d) -> AABB | None:
    """Collision footprint of a solid prop; None for props that do not block movement."""

    k = str(kind or "").strip().lower()
    if k == PROP_CUBE:
        half = CUBE_HALF
    elif k == PROP_SPHERE:
        half = SPHERE_RADIUS
    else:
        return None
    p = (float(position.x), float(position.y), float(position.z))
    return AABB.from_center(p, (half, half, half))


class PropSpawner:
    """Places remote-spawned objects and remembers their collision boxes."""

    def __init__(self, *, loader, render, rng: random.Random | None = None) -> None:
        self.loader = loader
        self.render = render
        self.rng = rng or random.Random()
        self.boxes: list[AABB] = []
        self.nodes: list[object] = []

    def _random_color(self) -> tuple[float, float, float, float]:
        return (self.rng.random(), self.rng.random(), self.rng.random(), 1.0)

    def spawn(self, kind: str, position: LVector3d, *, geometry=None):
        k = str(kind or "").strip().lower()
        p = to_panda(position)
        if k == PROP_CUBE:
            model = self.loader.loadModel("models/box")
            # models/box spans 0..1; shift so the cube is centred on the point.
            model.reparentTo(self.render)
            model.setScale(CUBE_HALF * 2.0)
            model.setPos(p.x - CUBE_HALF, p.y - CUBE_HALF, p.z - CUBE_HALF)
            model.setColor(*self._random_color())
        elif k == PROP_SPHERE:
            model = self.loader.loadModel("models/smiley")
            model.reparentTo(self.render)
            model.setTextureOff(1)
            model.setScale(SPHERE_RADIUS)
            model.setPos(p)
            model.setColor(*self._random_color())
        elif k == PROP_LIGHT:
            light = PointLight("spawned-light")
            light.setColor(LVector4f(1, 1, 1, 1))
            # Falls to ~1/5 brightness at LIGHT_RANGE.
            light.setAttenuation((1.0, 0.0, 4.0 / (LIGHT_RANGE * LIGHT_RANGE)))
            model = self.render.attachNewNode(light)
            model.setPos(p)
            self.render.setLight(model)
        else:
            logger.warning("Unknown prop type %r", kind)
            return None

        self.nodes.append(model)
        box = prop_collision_box(k, position)
        if box is not None:
            self.boxes.append(box)
            if geometry is not None and hasattr(geometry, "add_box"):
                geometry.add_box(box)
        logger.info("Spawned %s at (%.2f, %.2f, %.2f)", k, float(position.x), float(position.y), float(position.z))
        return model
