from __future__ import annotations

import json
import math
from dataclasses import dataclass, field

ROLE_CLIENT = "client"
ROLE_CONTROLLER = "controller"

DEFAULT_MESSAGE_DURATION_MS = 3000


class ProtocolError(ValueError):
    """A remote-control message that cannot be turned into a command."""


@dataclass(frozen=True)
class TeleportCommand:
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class LookCommand:
    rx: float = 0.0
    ry: float = 0.0


@dataclass(frozen=True)
class RotateCommand:
    angle: float = 0.0


@dataclass(frozen=True)
class SpawnCommand:
    object: str
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class MessageCommand:
    text: str
    duration_ms: int = DEFAULT_MESSAGE_DURATION_MS


@dataclass(frozen=True)
class TimeCommand:
    value: float


@dataclass(frozen=True)
class WeatherCommand:
    value: str


@dataclass(frozen=True)
class EffectCommand:
    name: str
    params: dict = field(default_factory=dict)


@dataclass(frozen=True)
class GetStateCommand:
    pass


Command = (
    TeleportCommand
    | LookCommand
    | RotateCommand
    | SpawnCommand
    | MessageCommand
    | TimeCommand
    | WeatherCommand
    | EffectCommand
    | GetStateCommand
)


def encode_json(obj: dict) -> bytes:
    return (json.dumps(obj, separators=(",", ":"), ensure_ascii=True) + "\n").encode("utf-8")


def decode_message(line: bytes) -> dict | None:
    """One framed line as a JSON object. Blank lines give None; anything else that is not an object raises ProtocolError."""

    s = line.decode("utf-8", errors="replace").strip()
    if not s:
        return None
    try:
        v = json.loads(s)
    except ValueError as e:
        raise ProtocolError(f"invalid JSON: {e}") from e
    if not isinstance(v, dict):
        raise ProtocolError(f"expected a JSON object, got {type(v).__name__}")
    return v


def _number(obj: dict, key: str, *, default: float | None = None) -> float:
    raw = obj.get(key)
    if raw is None:
        if default is None:
            raise ProtocolError(f"missing field {key!r}")
        return float(default)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ProtocolError(f"field {key!r} must be a number")
    value = float(raw)
    if not math.isfinite(value):
        raise ProtocolError(f"field {key!r} must be finite")
    return value


def _text(obj: dict, key: str, *, default: str | None = None) -> str:
    raw = obj.get(key)
    if raw is None:
        if default is None:
            raise ProtocolError(f"missing field {key!r}")
        return default
    if not isinstance(raw, str):
        raise ProtocolError(f"field {key!r} must be a string")
    return raw


def parse_command(obj: dict) -> Command | None:
    """
    Build a command from a decoded message.

    Returns None for message types the game does not handle (relay traffic such as
    `sync`, or commands from a newer controller). Raises ProtocolError when a known
    command carries missing or badly typed fields.
    """

    if not isinstance(obj, dict):
        raise ProtocolError("message must be a JSON object")
    t = obj.get("type")
    if not isinstance(t, str) or not t:
        raise ProtocolError("missing message type")

    if t == "teleport":
        return TeleportCommand(x=_number(obj, "x"), y=_number(obj, "y"), z=_number(obj, "z"))
    if t == "look":
        return LookCommand(rx=_number(obj, "rx", default=0.0), ry=_number(obj, "ry", default=0.0))
    if t == "rotate":
        return RotateCommand(angle=_number(obj, "angle", default=0.0))
    if t == "spawn":
        return SpawnCommand(
            object=_text(obj, "object"),
            x=_number(obj, "x"),
            y=_number(obj, "y"),
            z=_number(obj, "z"),
        )
    if t == "message":
        duration = _number(obj, "duration", default=float(DEFAULT_MESSAGE_DURATION_MS))
        return MessageCommand(text=_text(obj, "text", default=""), duration_ms=max(0, int(duration)))
    if t == "time":
        value = _number(obj, "value")
        if value < 0.0 or value > 24.0:
            raise ProtocolError("time value must be within 0..24")
        return TimeCommand(value=value)
    if t == "weather":
        return WeatherCommand(value=_text(obj, "value"))
    if t == "effect":
        params = obj.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise ProtocolError("field 'params' must be an object")
        return EffectCommand(name=_text(obj, "name"), params=dict(params))
    if t == "getState":
        return GetStateCommand()
    return None


def hello_message(*, role: str) -> dict:
    return {"type": "hello", "role": str(role)}


def player_update_message(snapshot: dict) -> dict:
    return {
        "type": "playerUpdate",
        "position": snapshot.get("position"),
        "rotation": snapshot.get("rotation"),
        "camera": snapshot.get("camera"),
    }
