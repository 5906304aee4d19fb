from __future__ import annotations

from panda3d.core import ButtonHandle, KeyboardButton

from ittycity.physics.motion.intent import InputState


def poll_mouse_look_delta(host) -> None:
    if host.cfg.smoke or not host._pointer_locked:
        host._last_mouse = None
        return

    # Primary path: normalized mouse coords (works well with relative mouse mode).
    if host.mouseWatcherNode is not None and host.mouseWatcherNode.hasMouse():
        mx = float(host.mouseWatcherNode.getMouseX())
        my = float(host.mouseWatcherNode.getMouseY())
        if host._last_mouse is None:
            host._last_mouse = (mx, my)
            return
        lmx, lmy = host._last_mouse
        host._last_mouse = (mx, my)

        # Pixels, screen-down positive (mouse up -> negative dy).
        dx_norm = mx - lmx
        dy_norm = lmy - my
        host._mouse_dx_accum += dx_norm * (host.win.getXSize() * 0.5)
        host._mouse_dy_accum += dy_norm * (host.win.getYSize() * 0.5)
        return

    # Fallback: pointer delta vs screen center.
    cx = host.win.getXSize() // 2
    cy = host.win.getYSize() // 2
    pointer = host.win.getPointer(0)
    dx = float(pointer.getX() - cx)
    dy = float(pointer.getY() - cy)

    if dx == 0.0 and dy == 0.0:
        return
    host._mouse_dx_accum += dx
    host._mouse_dy_accum += dy
    host.win.movePointer(0, int(cx), int(cy))


def consume_mouse_look_delta(host) -> tuple[float, float]:
    dx = float(host._mouse_dx_accum)
    dy = float(host._mouse_dy_accum)
    host._mouse_dx_accum = 0.0
    host._mouse_dy_accum = 0.0
    return (dx, dy)


def consume_zoom_steps(host) -> int:
    steps = int(host._zoom_accum)
    host._zoom_accum = 0
    return steps


def is_key_down(host, key_name: str) -> bool:
    if host.mouseWatcherNode is None:
        return False
    k = (key_name or "").lower().strip()
    if not k:
        return False
    if k in {"space", "spacebar"}:
        return bool(host.mouseWatcherNode.isButtonDown(KeyboardButton.space()))
    if len(k) == 1 and ord(k) < 128:
        # ASCII key (layout-dependent) + raw key (layout-independent).
        if host.mouseWatcherNode.isButtonDown(KeyboardButton.ascii_key(k)):
            return True
        return bool(host.mouseWatcherNode.isButtonDown(ButtonHandle(f"raw-{k}")))
    return bool(host.mouseWatcherNode.isButtonDown(ButtonHandle(k)))


def held_movement_keys(host) -> dict[str, bool]:
    mw = host.mouseWatcherNode
    if mw is None:
        return {"forward": False, "backward": False, "left": False, "right": False}
    return {
        "forward": is_key_down(host, "w") or bool(mw.isButtonDown(KeyboardButton.up())),
        "backward": is_key_down(host, "s") or bool(mw.isButtonDown(KeyboardButton.down())),
        "left": is_key_down(host, "a") or bool(mw.isButtonDown(KeyboardButton.left())),
        "right": is_key_down(host, "d") or bool(mw.isButtonDown(KeyboardButton.right())),
    }


def sample_input_state(host, *, paused: bool) -> InputState:
    """One InputState per frame: held keys plus the mouse/wheel deltas accumulated since the last call."""

    look_dx, look_dy = consume_mouse_look_delta(host)
    zoom = consume_zoom_steps(host)
    if paused:
        return InputState()

    keys = held_movement_keys(host)
    return InputState(
        forward=keys["forward"],
        backward=keys["backward"],
        left=keys["left"],
        right=keys["right"],
        jump=is_key_down(host, "space"),
        run=is_key_down(host, "lshift") or is_key_down(host, "rshift") or is_key_down(host, "shift"),
        look_dx=look_dx,
        look_dy=look_dy,
        zoom_steps=zoom,
    )
