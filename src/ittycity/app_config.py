from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_RELAY_HOST = "127.0.0.1"
DEFAULT_RELAY_PORT = 7780


def default_relay_port() -> int:
    raw = os.environ.get("ITTYCITY_RELAY_PORT")
    if not raw:
        return DEFAULT_RELAY_PORT
    try:
        port = int(raw)
    except ValueError:
        return DEFAULT_RELAY_PORT
    if port <= 0 or port > 65535:
        return DEFAULT_RELAY_PORT
    return port


@dataclass(frozen=True)
class RunConfig:
    # Headless offscreen run: load the scene, step a few seconds of scripted input, exit.
    smoke: bool = False
    smoke_seconds: float = 3.0
    # Path to a .glb/.gltf/.bam model. If None (or loading fails), the graybox scene is used.
    map_path: str | None = None
    first_person: bool = False
    # Remote-control relay to connect to. None disables the channel.
    remote_host: str | None = DEFAULT_RELAY_HOST
    remote_port: int = DEFAULT_RELAY_PORT
    # Initial atmosphere.
    time_of_day: float = 12.0
    weather: str = "clear"
