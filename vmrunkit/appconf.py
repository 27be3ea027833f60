"""The application configuration file and its TLS settings."""

from __future__ import annotations

import os
import ssl
from dataclasses import dataclass, field

from .serverconf import ServerConf

DEFAULT_CERT_DIR = "/usr/share/kvmrun/tls"
DEFAULT_BIND_SOCKET = "/run/kvmrund.sock"

_PEM_CERT_MARK = "-----BEGIN CERTIFICATE-----"
_PEM_CERT_END = "-----END CERTIFICATE-----"
_CIPHERS = "ECDHE-ECDSA-AES128-GCM-SHA256"
_KNOWN = {"common": {"cert-dir"}, "server": {"listen"}}


@dataclass
class CommonParams:
    """Settings shared by the server and clients."""

    cert_dir: str = DEFAULT_CERT_DIR
    tls_context: ssl.SSLContext | None = None

    @property
    def ca_crt(self) -> str:
        return os.path.join(self.cert_dir, "CA.crt")

    @property
    def ca_key(self) -> str:
        return os.path.join(self.cert_dir, "CA.key")

    @property
    def server_crt(self) -> str:
        return os.path.join(self.cert_dir, "server.crt")

    @property
    def server_key(self) -> str:
        return os.path.join(self.cert_dir, "server.key")

    @property
    def client_crt(self) -> str:
        return os.path.join(self.cert_dir, "client.crt")

    @property
    def client_key(self) -> str:
        return os.path.join(self.cert_dir, "client.key")


@dataclass
class AppConfig:
    """The whole configuration."""

    common: CommonParams = field(default_factory=CommonParams)
    server: ServerConf = field(default_factory=lambda: ServerConf(bind_socket=DEFAULT_BIND_SOCKET))


def _strip_comment(line: str) -> str:
    quoted = False
    escaped = False
    for pos, char in enumerate(line):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            quoted = not quoted
        elif char in ";#" and not quoted:
            return line[:pos]
    return line


def _unquote(value: str) -> str:
    out = []
    chars = iter(value)
    for char in chars:
        if char == '"':
            continue
        if char == "\\":
            out.append(next(chars, ""))
        else:
            out.append(char)
    return "".join(out)


def _parse(text: str) -> dict[str, dict[str, list[str]]]:
    sections: dict[str, dict[str, list[str]]] = {}
    current: str | None = None
    for lineno, raw in enumerate(text.splitlines(), 1):
        line = _strip_comment(raw).strip()
        if not line:
            continue
        if line.startswith("["):
            if not line.endswith("]"):
                raise ValueError(f"line {lineno}: invalid section header")
            current = line[1:-1].strip().lower()
            if current not in _KNOWN:
                raise ValueError(f"line {lineno}: invalid section: {current}")
            sections.setdefault(current, {})
            continue
        if current is None:
            raise ValueError(f"line {lineno}: variable outside of a section")
        name, sep, value = line.partition("=")
        name = name.strip().lower()
        if name not in _KNOWN[current]:
            raise ValueError(f"line {lineno}: invalid variable: {current}.{name}")
        sections[current].setdefault(name, []).append(_unquote(value.strip()) if sep else "")
    return sections


def tls_context(cert_file: str, key_file: str, server_side: bool) -> ssl.SSLContext:
    """Build a mutual-TLS context from a chain of exactly two certificates: own + CA."""
    protocol = ssl.PROTOCOL_TLS_SERVER if server_side else ssl.PROTOCOL_TLS_CLIENT
    ctx = ssl.SSLContext(protocol)
    ctx.load_cert_chain(cert_file, key_file)

    with open(cert_file, encoding="ascii", errors="replace") as fh:
        pem = fh.read()
    blocks = [
        _PEM_CERT_MARK + chunk.split(_PEM_CERT_END, 1)[0] + _PEM_CERT_END + "\n"
        for chunk in pem.split(_PEM_CERT_MARK)[1:]
    ]
    if len(blocks) != 2:
        raise ValueError("certificate should have 2 concatenated certificates: server + CA")

    ctx.load_verify_locations(cadata=blocks[1])
    ctx.verify_mode = ssl.CERT_REQUIRED
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    ctx.set_ciphers(_CIPHERS)
    ctx.set_alpn_protocols(["h2", "http/1.1"])
    return ctx


def load_config(path: str | os.PathLike) -> AppConfig:
    """Read the configuration file and load TLS settings where certificates exist."""
    with open(path, encoding="utf-8") as fh:
        text = fh.read()
    try:
        sections = _parse(text)
    except ValueError as err:
        raise ValueError(f"failed to parse config file: {err}") from err

    cfg = AppConfig()

    cert_dirs = sections.get("common", {}).get("cert-dir")
    if cert_dirs:
        cfg.common.cert_dir = cert_dirs[-1]

    listen: list[str] = []
    for value in sections.get("server", {}).get("listen", []):
        if value:
            listen.append(value)
        else:
            listen.clear()
    cfg.server.bindings = listen

    try:
        cfg.common.tls_context = tls_context(cfg.common.client_crt, cfg.common.client_key, False)
    except FileNotFoundError:
        pass

    try:
        cfg.server.tls_context = tls_context(cfg.common.server_crt, cfg.common.server_key, True)
    except FileNotFoundError:
        pass

    return cfg