from __future__ import annotations

"""
Game app wiring.

- `GameApp`: Panda3D ShowBase application.
- `run(cfg)`: entrypoint used by `python -m ittycity`.
"""


def __getattr__(name: str):
    # Lazy import: world modules import ittycity.game.coords, and app imports
    # world modules, so importing app eagerly here creates an import cycle.
    if name in __all__:
        from . import app

        return getattr(app, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["GameApp", "run"]
