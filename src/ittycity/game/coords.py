from __future__ import annotations

import math

from panda3d.core import LVector3d, Point3

# Movement frame: Y-up, -Z forward. Panda3D frame: Z-up, +Y forward.
# (x, y, z) -> (x, -z, y)


def to_panda(v: LVector3d) -> Point3:
    return Point3(float(v.x), -float(v.z), float(v.y))


def from_panda(p) -> LVector3d:
    return LVector3d(float(p[0]), float(p[2]), -float(p[1]))


def model_heading(facing: float) -> float:
    # Models face Panda3D +Y; the core facing angle is atan2(dir.x, dir.z).
    return (math.degrees(float(facing)) + 180.0) % 360.0


def triangles_from_panda(tris: list[list[float]]) -> list[list[float]]:
    out: list[list[float]] = []
    for tri in tris:
        if len(tri) != 9:
            continue
        row: list[float] = []
        for i in range(3):
            x, y, z = float(tri[i * 3]), float(tri[i * 3 + 1]), float(tri[i * 3 + 2])
            row.extend((x, z, -y))
        out.append(row)
    return out
