from __future__ import annotations

from ittycity.net.client import RemoteControlClient
from ittycity.net.protocol import ProtocolError, parse_command
from ittycity.net.relay import RelayHub, RelayServer, run_relay

__all__ = ["ProtocolError", "RelayHub", "RelayServer", "RemoteControlClient", "parse_command", "run_relay"]
