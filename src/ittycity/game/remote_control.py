from __future__ import annotations

import logging

from panda3d.core import LVector3d

from ittycity.net.protocol import (
    Command,
    EffectCommand,
    GetStateCommand,
    LookCommand,
    MessageCommand,
    RotateCommand,
    SpawnCommand,
    TeleportCommand,
    TimeCommand,
    WeatherCommand,
    player_update_message,
)
from ittycity.physics.simulation import Look, Rotate, SimulationContext, Teleport, snapshot

logger = logging.getLogger(__name__)


class RemoteControlBridge:
    """
    Applies remote commands at the start of a frame and reports player state back.

    Movement overwrites go through the simulation context's pending queue so they
    land before the next movement step. Everything else is handed to `world`,
    which provides `spawn_prop`, `show_message`, `set_time`, `set_weather` and
    `play_effect`.
    """

    def __init__(self, *, client, ctx: SimulationContext, world, update_interval: float = 0.5) -> None:
        self.client = client
        self.ctx = ctx
        self.world = world
        self.update_interval = max(0.05, float(update_interval))
        self._last_update: float | None = None
        self.sent_updates = 0

    def dispatch(self, cmd: Command, *, now: float) -> None:
        if isinstance(cmd, TeleportCommand):
            self.ctx.queue(Teleport(x=cmd.x, y=cmd.y, z=cmd.z))
        elif isinstance(cmd, LookCommand):
            self.ctx.queue(Look(rx=cmd.rx, ry=cmd.ry))
        elif isinstance(cmd, RotateCommand):
            self.ctx.queue(Rotate(angle=cmd.angle))
        elif isinstance(cmd, GetStateCommand):
            self.send_update()
        elif isinstance(cmd, SpawnCommand):
            self.world.spawn_prop(cmd.object, LVector3d(cmd.x, cmd.y, cmd.z))
        elif isinstance(cmd, MessageCommand):
            self.world.show_message(cmd.text, duration_ms=cmd.duration_ms, now=now)
        elif isinstance(cmd, TimeCommand):
            self.world.set_time(cmd.value)
        elif isinstance(cmd, WeatherCommand):
            self.world.set_weather(cmd.value)
        elif isinstance(cmd, EffectCommand):
            self.world.play_effect(cmd.name, cmd.params, now=now)
        else:
            logger.debug("Unhandled remote command %r", cmd)

    def apply_incoming(self, *, now: float) -> int:
        cmds = self.client.drain()
        for cmd in cmds:
            self.dispatch(cmd, now=now)
        return len(cmds)

    def send_update(self) -> bool:
        ok = bool(self.client.send(player_update_message(snapshot(self.ctx))))
        if ok:
            self.sent_updates += 1
        return ok

    def tick_updates(self, *, now: float) -> bool:
        """Send a playerUpdate when the interval has elapsed since the last one."""

        if self._last_update is not None and float(now) - self._last_update < self.update_interval:
            return False
        self._last_update = float(now)
        return self.send_update()
