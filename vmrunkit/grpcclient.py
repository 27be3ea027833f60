"""Client channels to the RPC server."""

from __future__ import annotations

import collections
import time
from typing import Any, Callable

import grpc

DEFAULT_PORT = 9393
RETRY_ATTEMPTS = 10
RETRY_DELAY = 7.0


class _CallDetails(
    collections.namedtuple(
        "_CallDetails",
        ("method", "timeout", "metadata", "credentials", "wait_for_ready", "compression"),
    ),
    grpc.ClientCallDetails,
):
    pass


def normalize_addr(addr: str) -> str:
    """Append the default port to an address that has none."""
    parts = addr.split(":")
    if len(parts) == 1:
        return f"{addr}:{DEFAULT_PORT}"
    if len(parts) == 2:
        return addr
    raise ValueError(f"invalid addr string: {addr}")


class OutgoingMetadataInterceptor(grpc.UnaryUnaryClientInterceptor):
    """Sends each call with a copy of its metadata, detached from the caller's deadline."""

    def intercept_unary_unary(
        self, continuation: Callable[..., Any], client_call_details: grpc.ClientCallDetails, request: Any
    ) -> Any:
        metadata = client_call_details.metadata
        details = _CallDetails(
            method=client_call_details.method,
            timeout=None,
            metadata=list(metadata) if metadata is not None else None,
            credentials=client_call_details.credentials,
            wait_for_ready=getattr(client_call_details, "wait_for_ready", None),
            compression=getattr(client_call_details, "compression", None),
        )
        return continuation(details, request)


class RetryInterceptor(grpc.UnaryUnaryClientInterceptor):
    """Repeats calls that fail with UNAVAILABLE."""

    def __init__(self, attempts: int = RETRY_ATTEMPTS, delay: float = RETRY_DELAY) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.delay = delay

    def intercept_unary_unary(
        self, continuation: Callable[..., Any], client_call_details: grpc.ClientCallDetails, request: Any
    ) -> Any:
        for attempt in range(self.attempts):
            response = continuation(client_call_details, request)
            if response.code() != grpc.StatusCode.UNAVAILABLE or attempt == self.attempts - 1:
                return response
            time.sleep(self.delay)
        return response


def new_channel(
    addr: str, credentials: grpc.ChannelCredentials | None = None, with_retries: bool = False
) -> grpc.Channel:
    """Open a channel to *addr*; plain text unless *credentials* are given."""
    target = normalize_addr(addr)
    if credentials is None:
        channel = grpc.insecure_channel(target)
    else:
        channel = grpc.secure_channel(target, credentials)

    interceptors: list[grpc.UnaryUnaryClientInterceptor] = [OutgoingMetadataInterceptor()]
    if with_retries:
        interceptors.append(RetryInterceptor())
    return grpc.intercept_channel(channel, *interceptors)