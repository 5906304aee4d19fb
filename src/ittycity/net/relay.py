from __future__ import annotations

import copy
import logging
import socket
import threading
import time

from ittycity.net.protocol import (
    DEFAULT_MESSAGE_DURATION_MS,
    ROLE_CONTROLLER,
    ROLE_CLIENT,
    ProtocolError,
    decode_message,
    encode_json,
)

logger = logging.getLogger(__name__)

Outbound = tuple[object, dict]


def default_relay_state() -> dict:
    return {
        "player": {"position": {"x": 0, "y": 0, "z": 0}, "rotation": 0},
        "camera": {"angleX": 0, "angleY": 0},
        "time": 12,
        "weather": "clear",
    }


class RelayHub:
    """
    Message routing between controllers and game clients, independent of sockets.

    Peers are opaque keys. Every method returns the messages to deliver as
    `(peer, message)` pairs; the server owns the actual I/O.
    """

    def __init__(self) -> None:
        self.state = default_relay_state()
        self._roles: dict[object, str] = {}

    def role_of(self, peer: object) -> str | None:
        return self._roles.get(peer)

    def clients(self) -> list[object]:
        return [p for p, role in self._roles.items() if role == ROLE_CLIENT]

    def controllers(self) -> list[object]:
        return [p for p, role in self._roles.items() if role == ROLE_CONTROLLER]

    def snapshot(self) -> dict:
        return copy.deepcopy(self.state)

    def connect(self, peer: object, *, role: str) -> list[Outbound]:
        r = ROLE_CONTROLLER if str(role) == ROLE_CONTROLLER else ROLE_CLIENT
        self._roles[peer] = r
        if r == ROLE_CONTROLLER:
            logger.info("Controller connected")
            return []
        logger.info("Game client connected")
        return [(peer, {"type": "sync", "state": self.snapshot()})]

    def disconnect(self, peer: object) -> None:
        role = self._roles.pop(peer, None)
        if role is not None:
            logger.info("%s disconnected", "Controller" if role == ROLE_CONTROLLER else "Game client")

    def broadcast(self, msg: dict) -> list[Outbound]:
        return [(p, msg) for p in self.clients()]

    def handle(self, peer: object, msg: dict) -> list[Outbound]:
        role = self._roles.get(peer)
        if role is None:
            # The first line decides the role; anything but a hello makes the peer a game client.
            if msg.get("type") == "hello":
                return self.connect(peer, role=str(msg.get("role") or ROLE_CLIENT))
            out = self.connect(peer, role=ROLE_CLIENT)
            return out + self.handle(peer, msg)
        if msg.get("type") == "hello":
            return []
        if role == ROLE_CONTROLLER:
            return self._handle_controller(peer, msg)
        self._handle_client(msg)
        return []

    def _handle_controller(self, peer: object, msg: dict) -> list[Outbound]:
        t = msg.get("type")
        logger.info("Command from controller: %s", t)
        if t == "teleport":
            x, y, z = msg.get("x"), msg.get("y"), msg.get("z")
            self.state["player"]["position"] = {"x": x, "y": y, "z": z}
            return self.broadcast({"type": "teleport", "x": x, "y": y, "z": z})
        if t == "look":
            self.state["camera"] = {"angleX": msg.get("rx") or 0, "angleY": msg.get("ry") or 0}
            return self.broadcast({"type": "look", "rx": msg.get("rx"), "ry": msg.get("ry")})
        if t == "rotate":
            self.state["player"]["rotation"] = msg.get("angle") or 0
            return self.broadcast({"type": "rotate", "angle": msg.get("angle")})
        if t == "spawn":
            return self.broadcast(
                {"type": "spawn", "object": msg.get("object"), "x": msg.get("x"), "y": msg.get("y"), "z": msg.get("z")}
            )
        if t == "time":
            self.state["time"] = msg.get("value")
            return self.broadcast({"type": "time", "value": msg.get("value")})
        if t == "weather":
            self.state["weather"] = msg.get("value")
            return self.broadcast({"type": "weather", "value": msg.get("value")})
        if t == "message":
            return self.broadcast(
                {"type": "message", "text": msg.get("text"), "duration": msg.get("duration") or DEFAULT_MESSAGE_DURATION_MS}
            )
        if t == "effect":
            return self.broadcast({"type": "effect", "name": msg.get("name"), "params": msg.get("params")})
        if t == "getState":
            return [(peer, {"type": "state", "data": self.snapshot()})]
        # Unknown commands pass through so controllers can extend the vocabulary.
        return self.broadcast(dict(msg))

    def _handle_client(self, msg: dict) -> None:
        if msg.get("type") != "playerUpdate":
            return
        self.state["player"]["position"] = msg.get("position")
        self.state["player"]["rotation"] = msg.get("rotation")
        self.state["camera"] = msg.get("camera")


class RelayServer:
    """Non-blocking TCP relay: newline-delimited JSON, one hub, polled from a single loop."""

    def __init__(self, *, host: str = "127.0.0.1", port: int = 7780, hub: RelayHub | None = None) -> None:
        self.host = str(host)
        self.hub = hub or RelayHub()

        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind((self.host, int(port)))
        self._listener.listen(32)
        self._listener.setblocking(False)
        # Port 0 binds an ephemeral port.
        self.port = int(self._listener.getsockname()[1])

        self._peers: dict[socket.socket, bytes] = {}
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False

    @staticmethod
    def _safe_close_socket(sock: socket.socket | None) -> None:
        if sock is None:
            return
        try:
            sock.close()
        except OSError:
            pass

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self.run_forever,
            kwargs={"stop_event": self._stop},
            daemon=True,
            name="ittycity-relay",
        )
        self._thread.start()

    def stop(self, *, timeout_s: float = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=max(0.1, float(timeout_s)))
        self._thread = None
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for cs in list(self._peers.keys()):
            self.hub.disconnect(cs)
            self._safe_close_socket(cs)
        self._peers.clear()
        self._safe_close_socket(self._listener)

    def _accept(self) -> None:
        while True:
            try:
                cs, _addr = self._listener.accept()
            except (BlockingIOError, InterruptedError):
                return
            cs.setblocking(False)
            self._peers[cs] = b""

    def _deliver(self, outbound: list[Outbound], dead: list[socket.socket]) -> None:
        for peer, msg in outbound:
            if not isinstance(peer, socket.socket) or peer in dead:
                continue
            try:
                peer.sendall(encode_json(msg))
            except OSError:
                dead.append(peer)

    def _process(self) -> None:
        dead: list[socket.socket] = []
        for cs, buf in list(self._peers.items()):
            if cs in dead:
                continue
            try:
                data = cs.recv(8192)
            except (BlockingIOError, InterruptedError):
                continue
            except OSError:
                dead.append(cs)
                continue
            if not data:
                dead.append(cs)
                continue
            buf += data
            while b"\n" in buf:
                line, buf = buf.split(b"\n", 1)
                try:
                    msg = decode_message(line)
                except ProtocolError as e:
                    logger.warning("Error parsing message: %s", e)
                    continue
                if msg is None:
                    continue
                self._deliver(self.hub.handle(cs, msg), dead)
            self._peers[cs] = buf

        for cs in dead:
            self._drop(cs)

    def _drop(self, cs: socket.socket) -> None:
        self._peers.pop(cs, None)
        self.hub.disconnect(cs)
        self._safe_close_socket(cs)

    def poll_once(self) -> None:
        self._accept()
        self._process()

    def run_forever(self, *, stop_event: threading.Event | None = None) -> None:
        logger.info("Relay listening on %s:%d", self.host, self.port)
        try:
            while True:
                if stop_event is not None and stop_event.is_set():
                    break
                self.poll_once()
                time.sleep(0.002)
        finally:
            self.close()


def run_relay(*, host: str, port: int) -> None:
    srv = RelayServer(host=host, port=port)
    try:
        srv.run_forever()
    except KeyboardInterrupt:
        logger.info("Relay stopped")
