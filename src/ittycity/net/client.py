from __future__ import annotations

import logging
import socket
import threading
from collections import deque

from ittycity.net.protocol import (
    ROLE_CLIENT,
    Command,
    ProtocolError,
    decode_message,
    encode_json,
    hello_message,
    parse_command,
)

logger = logging.getLogger(__name__)


class RemoteControlClient:
    """
    Game-side end of the remote-control channel.

    Socket I/O runs on a daemon thread. Decoded commands are queued for the frame loop
    (`drain`), which applies them at the start of the next frame. A dropped connection
    is retried after a fixed delay; bad lines are logged and skipped.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        reconnect_delay: float = 3.0,
        connect_timeout: float = 2.0,
        max_queued: int = 512,
    ) -> None:
        self.host = str(host)
        self.port = int(port)
        self.reconnect_delay = max(0.05, float(reconnect_delay))
        self.connect_timeout = max(0.05, float(connect_timeout))

        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._q: deque[Command] = deque(maxlen=max(16, int(max_queued)))
        self._sock: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._connected = threading.Event()

        self.rejected_count = 0
        self.ignored_count = 0
        self.connect_count = 0

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    def wait_connected(self, timeout: float) -> bool:
        return self._connected.wait(timeout=max(0.0, float(timeout)))

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="ittycity-remote-control")
        self._thread.start()

    def close(self) -> None:
        self._stop.set()
        self._drop_socket()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        self._thread = None

    def drain(self) -> list[Command]:
        with self._lock:
            if not self._q:
                return []
            out = list(self._q)
            self._q.clear()
            return out

    def send(self, obj: dict) -> bool:
        sock = self._sock
        if sock is None or not self._connected.is_set():
            return False
        payload = encode_json(obj)
        try:
            with self._send_lock:
                sock.sendall(payload)
        except OSError as e:
            logger.debug("Remote-control send failed: %s", e)
            self._drop_socket()
            return False
        return True

    def handle_line(self, line: bytes) -> Command | None:
        """Decode one inbound line and queue the command. Malformed lines never close the channel."""

        try:
            obj = decode_message(line)
            if obj is None:
                return None
            cmd = parse_command(obj)
        except ProtocolError as e:
            self.rejected_count += 1
            logger.warning("Discarding malformed remote-control message: %s", e)
            return None
        if cmd is None:
            self.ignored_count += 1
            logger.debug("Ignoring remote-control message type %r", obj.get("type"))
            return None
        with self._lock:
            self._q.append(cmd)
        return cmd

    def _drop_socket(self) -> None:
        self._connected.clear()
        sock = self._sock
        self._sock = None
        if sock is None:
            return
        try:
            sock.close()
        except OSError:
            pass

    def _connect(self) -> socket.socket:
        sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
        sock.settimeout(0.25)
        sock.sendall(encode_json(hello_message(role=ROLE_CLIENT)))
        return sock

    def _read_loop(self, sock: socket.socket) -> None:
        buf = b""
        while not self._stop.is_set():
            try:
                data = sock.recv(8192)
            except socket.timeout:
                continue
            if not data:
                return
            buf += data
            while b"\n" in buf:
                line, buf = buf.split(b"\n", 1)
                self.handle_line(line)

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                sock = self._connect()
            except OSError as e:
                logger.info("Remote control %s:%d unavailable (%s); retrying in %.1fs", self.host, self.port, e, self.reconnect_delay)
                self._stop.wait(self.reconnect_delay)
                continue

            self._sock = sock
            self._connected.set()
            self.connect_count += 1
            logger.info("Connected to remote control at %s:%d", self.host, self.port)
            try:
                self._read_loop(sock)
            except OSError as e:
                logger.info("Remote control connection lost: %s", e)
            finally:
                self._drop_socket()

            if not self._stop.is_set():
                logger.info("Remote control disconnected; reconnecting in %.1fs", self.reconnect_delay)
                self._stop.wait(self.reconnect_delay)
