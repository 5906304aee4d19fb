from __future__ import annotations

from panda3d.core import LVector3d

from ittycity.game.remote_control import RemoteControlBridge
from ittycity.net.protocol import (
    EffectCommand,
    GetStateCommand,
    LookCommand,
    MessageCommand,
    RotateCommand,
    SpawnCommand,
    TeleportCommand,
    TimeCommand,
    WeatherCommand,
)
from ittycity.physics.motion.intent import InputState
from ittycity.physics.simulation import Teleport, make_context, step_frame


class _FakeClient:
    def __init__(self, commands=None, *, connected: bool = True) -> None:
        self.commands = list(commands or [])
        self.connected = connected
        self.sent: list[dict] = []

    def drain(self):
        out, self.commands = self.commands, []
        return out

    def send(self, obj: dict) -> bool:
        if not self.connected:
            return False
        self.sent.append(obj)
        return True


class _FakeWorld:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def spawn_prop(self, kind, position) -> None:
        self.calls.append(("spawn", kind, (position.x, position.y, position.z)))

    def show_message(self, text, *, duration_ms, now) -> None:
        self.calls.append(("message", text, duration_ms))

    def set_time(self, value) -> None:
        self.calls.append(("time", value))

    def set_weather(self, value) -> None:
        self.calls.append(("weather", value))

    def play_effect(self, name, params, *, now) -> None:
        self.calls.append(("effect", name, params))


def test_movement_commands_become_pending_overwrites() -> None:
    ctx = make_context()
    client = _FakeClient([TeleportCommand(x=1.0, y=5.0, z=2.0), LookCommand(rx=0.1, ry=0.2), RotateCommand(angle=1.0)])
    bridge = RemoteControlBridge(client=client, ctx=ctx, world=_FakeWorld())
    assert bridge.apply_incoming(now=0.0) == 3
    assert len(ctx.pending) == 3
    assert ctx.pending[0] == Teleport(x=1.0, y=5.0, z=2.0)

    step_frame(ctx, InputState(), 1.0 / 60.0)
    assert ctx.player.position.x == 1.0
    assert ctx.player.yaw == 1.0
    assert abs(ctx.rig.yaw - 0.2) < 1e-12


def test_world_commands_are_forwarded() -> None:
    world = _FakeWorld()
    client = _FakeClient(
        [
            SpawnCommand(object="cube", x=1.0, y=2.0, z=3.0),
            MessageCommand(text="hi", duration_ms=1000),
            TimeCommand(value=19.0),
            WeatherCommand(value="rain"),
            EffectCommand(name="flash", params={}),
        ]
    )
    bridge = RemoteControlBridge(client=client, ctx=make_context(), world=world)
    bridge.apply_incoming(now=1.0)
    assert world.calls == [
        ("spawn", "cube", (1.0, 2.0, 3.0)),
        ("message", "hi", 1000),
        ("time", 19.0),
        ("weather", "rain"),
        ("effect", "flash", {}),
    ]


def test_get_state_answers_immediately() -> None:
    client = _FakeClient([GetStateCommand()])
    bridge = RemoteControlBridge(client=client, ctx=make_context(), world=_FakeWorld())
    bridge.apply_incoming(now=0.0)
    assert len(client.sent) == 1
    msg = client.sent[0]
    assert msg["type"] == "playerUpdate"
    assert set(msg["position"].keys()) == {"x", "y", "z"}


def test_periodic_updates_follow_the_interval() -> None:
    client = _FakeClient()
    bridge = RemoteControlBridge(client=client, ctx=make_context(), world=_FakeWorld(), update_interval=0.5)
    assert bridge.tick_updates(now=10.0) is True
    assert bridge.tick_updates(now=10.2) is False
    assert bridge.tick_updates(now=10.5) is True
    assert len(client.sent) == 2
    assert bridge.sent_updates == 2


def test_updates_while_disconnected_are_dropped() -> None:
    client = _FakeClient(connected=False)
    bridge = RemoteControlBridge(client=client, ctx=make_context(), world=_FakeWorld())
    assert bridge.tick_updates(now=0.0) is False
    assert bridge.sent_updates == 0
