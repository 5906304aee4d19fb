from __future__ import annotations

import math

from panda3d.core import LVector3d

from ittycity.game.coords import from_panda, model_heading, to_panda, triangles_from_panda


def test_axis_mapping() -> None:
    # Up is panda +Z, forward (-Z) is panda +Y.
    up = to_panda(LVector3d(0, 1, 0))
    assert (up.x, up.y, up.z) == (0.0, 0.0, 1.0)
    fwd = to_panda(LVector3d(0, 0, -1))
    assert (fwd.x, fwd.y, fwd.z) == (0.0, 1.0, 0.0)

    v = LVector3d(1.5, -2.0, 3.25)
    assert from_panda(to_panda(v)) == v


def test_headings() -> None:
    # Moving forward (facing pi) leaves the model pointing down panda +Y.
    assert abs(model_heading(math.pi)) < 1e-9


def test_triangles_convert_to_y_up() -> None:
    out = triangles_from_panda([[0, 0, 2, 1, 0, 2, 0, 1, 2], [1, 2]])
    assert out == [[0.0, 2.0, 0.0, 1.0, 2.0, 0.0, 0.0, 2.0, -1.0]]
