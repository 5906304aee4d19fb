from __future__ import annotations

from dataclasses import dataclass


@dataclass
class InputState:
    """Input snapshot for one frame: held keys plus unconsumed mouse/zoom deltas."""

    forward: bool = False
    backward: bool = False
    left: bool = False
    right: bool = False
    jump: bool = False
    run: bool = False
    # Accumulated pointer motion in pixels since the last frame.
    look_dx: float = 0.0
    look_dy: float = 0.0
    # Wheel ticks since the last frame (positive = zoom in).
    zoom_steps: int = 0

    def move_axes(self) -> tuple[int, int]:
        fwd = int(bool(self.forward)) - int(bool(self.backward))
        right = int(bool(self.right)) - int(bool(self.left))
        return (fwd, right)

    def has_move_input(self) -> bool:
        fwd, right = self.move_axes()
        return fwd != 0 or right != 0
