"""GELF UDP server — receives datagrams and feeds them to the dispatcher."""

import logging
import socket
import threading
import time

from gelf_input.config import Config
from gelf_input.dispatcher import DatagramDispatcher

logger = logging.getLogger(__name__)


class GelfUDPServer:
    def __init__(self, config: Config, dispatcher: DatagramDispatcher,
                 shutdown_event: threading.Event):
        self._config = config
        self._dispatcher = dispatcher
        self._shutdown = shutdown_event
        self._sock = None
        self.server_address = None

    def _open_socket(self) -> socket.socket:
        # IPv6 literals such as "::1" resolve to AF_INET6
        family, socktype, proto, _, sockaddr = socket.getaddrinfo(
            self._config.bind, self._config.port, 0, socket.SOCK_DGRAM,
        )[0]
        sock = socket.socket(family, socktype, proto)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, 4 * 1024 * 1024)
        sock.settimeout(1.0)
        sock.bind(sockaddr)
        return sock

    def start(self):
        sock = self._open_socket()
        self._sock = sock
        self.server_address = sock.getsockname()
        actual_rcvbuf = sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF)
        logger.info(
            "GELF UDP input listening on %s:%d (SO_RCVBUF=%d bytes, tag=%s)",
            self.server_address[0], self.server_address[1], actual_rcvbuf, self._config.tag,
        )

        while not self._shutdown.is_set():
            try:
                data, addr = sock.recvfrom(self._config.buffer_size)
            except socket.timeout:
                continue
            except OSError:
                if self._shutdown.is_set():
                    break
                raise

            self._dispatcher.dispatch(data, addr, received_at=time.time())

    def stop(self):
        self._shutdown.set()
        sock, self._sock = self._sock, None
        if sock:
            sock.close()
        logger.info("GELF UDP input stopped. Stats: %s", self._dispatcher.metrics.snapshot())
