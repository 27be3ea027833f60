"""The RPC server: TCP listeners on the configured addresses plus a unix socket."""

from __future__ import annotations

import abc
import logging
import os
import sys
import threading
from concurrent import futures
from typing import Any, Callable, Iterable

import grpc

from .serverconf import ServerConf

_log = logging.getLogger(__name__)

MAX_WORKERS = 10
GRACE_PERIOD = 30.0


class Registration(abc.ABC):
    """A service that can attach itself to a server."""

    @abc.abstractmethod
    def name(self) -> str:
        """Return the service name."""

    @abc.abstractmethod
    def register(self, server: grpc.Server) -> None:
        """Add the service's handlers to *server*."""


class LogRequestInterceptor(grpc.ServerInterceptor):
    """Logs every incoming call."""

    def intercept_service(
        self, continuation: Callable[[grpc.HandlerCallDetails], Any], handler_call_details: grpc.HandlerCallDetails
    ) -> Any:
        _log.info("GRPC Request: %s", handler_call_details.method)
        return continuation(handler_call_details)


def default_socket_path(conf: ServerConf) -> str:
    """Return the unix socket path; on Linux it lives in the abstract namespace ("@")."""
    if conf.bind_socket:
        path = conf.bind_socket
    else:
        prog = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "python"
        path = os.path.join("/run", f"{prog}_{os.getpid()}.sock")
    if sys.platform.startswith("linux"):
        path = "@" + path
    return path


def _unix_target(path: str) -> str:
    if path.startswith("@"):
        return "unix-abstract:" + path[1:]
    return "unix:" + path


class Server:
    """Serves the registered services until stopped.

    When ``conf.tls_context`` is set, ``credentials`` must hold the matching
    server credentials before ``listen_and_serve`` is called.
    """

    def __init__(self, conf: ServerConf, services: Iterable[Registration]) -> None:
        self.conf = conf
        self.sockpath = default_socket_path(conf)
        self.credentials: grpc.ServerCredentials | None = None
        self._stop = threading.Event()
        self._grpc_server = grpc.server(
            futures.ThreadPoolExecutor(max_workers=MAX_WORKERS),
            interceptors=(LogRequestInterceptor(),),
        )
        for service in services:
            _log.info("Registering service: %s", service.name())
            service.register(self._grpc_server)

    def _tcp_addresses(self) -> list[str]:
        port = self.conf.plain_port if self.conf.tls_context is None else self.conf.tls_port
        addrs = []
        for ip in self.conf.bind_addrs():
            host = str(ip) if ip.version == 4 else f"[{ip}]"
            addrs.append(f"{host}:{port}")
        return addrs

    def _add_port(self, address: str, credentials: grpc.ServerCredentials | None) -> None:
        try:
            if credentials is None:
                bound = self._grpc_server.add_insecure_port(address)
            else:
                bound = self._grpc_server.add_secure_port(address, credentials)
        except RuntimeError as err:
            raise RuntimeError(f"GRPC Server error: failed to listen on {address}: {err}") from err
        if bound == 0:
            raise RuntimeError(f"GRPC Server error: failed to listen on {address}")

    def listen_and_serve(self, stop_event: threading.Event | None = None) -> None:
        """Serve until ``stop()`` is called or *stop_event* is set, then stop gracefully."""
        if self.conf.tls_context is not None and self.credentials is None:
            raise RuntimeError("TLS is configured but no server credentials were given")

        tcp = self._tcp_addresses()
        for address in tcp:
            self._add_port(address, self.credentials if self.conf.tls_context is not None else None)
        unix = _unix_target(self.sockpath)
        self._add_port(unix, None)

        self._grpc_server.start()
        for address in (*tcp, unix):
            _log.info("Starting GRPC server on %s", address)

        while not self._stop.wait(0.1):
            if stop_event is not None and stop_event.is_set():
                break

        self._grpc_server.stop(GRACE_PERIOD).wait()
        for address in (*tcp, unix):
            _log.info("GRPC server stopped on %s", address)

    def stop(self) -> None:
        """Ask ``listen_and_serve`` to shut the server down."""
        self._stop.set()