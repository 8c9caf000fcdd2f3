"""
Listener configuration.

Each configured HTTP listener becomes one uvicorn server. A listener binds
a TCP address, a unix socket path (any address starting with "/"), or a
socket handed over by the service manager (systemd socket activation).
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

# First file descriptor passed by systemd socket activation
LISTEN_FDS_START = 3


@dataclass(frozen=True, slots=True)
class ListenerTLS:
    cert_file: str
    key_file: str


@dataclass(frozen=True, slots=True)
class ListenerConfig:
    """Where one HTTP listener accepts connections."""
    address: Optional[str] = None
    socket_number: Optional[int] = None
    tls: Optional[ListenerTLS] = None

    @property
    def is_unix(self) -> bool:
        return self.address is not None and self.address.startswith("/")

    def describe(self) -> str:
        scheme = "https" if self.tls else "http"
        if self.socket_number is not None:
            return f"{scheme} on inherited socket {self.socket_number}"
        if self.is_unix:
            return f"{scheme} on unix:{self.address}"
        return f"{scheme}://{self.address}"

    def uvicorn_options(self, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Keyword arguments for uvicorn.Config that bind this listener."""
        options: Dict[str, Any] = {}
        if self.socket_number is not None:
            options["fd"] = inherited_fd(self.socket_number, environ)
        elif self.is_unix:
            options["uds"] = self.address
        else:
            host, port = split_address(self.address or "")
            options["host"] = host
            options["port"] = port

        if self.tls is not None:
            options["ssl_certfile"] = self.tls.cert_file
            options["ssl_keyfile"] = self.tls.key_file
        return options


def split_address(address: str) -> Tuple[str, int]:
    """Split "host:port"; an empty host means every interface."""
    host, sep, port_text = address.rpartition(":")
    if not sep or not port_text.isdigit():
        raise ValueError(f"invalid listen address {address!r}, expected host:port")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port_text)


def inherited_fd(socket_number: int, environ: Optional[Dict[str, str]] = None) -> int:
    """File descriptor of the nth socket passed in by the service manager."""
    environ = os.environ if environ is None else environ
    try:
        count = int(environ.get("LISTEN_FDS", "0"))
    except ValueError:
        count = 0
    if socket_number >= count:
        raise ValueError(
            f"insufficient sockets passed by supervisor: need at least {socket_number + 1} but only got {count}"
        )
    return LISTEN_FDS_START + socket_number


def parse_listeners(raw: Dict[str, Any], origin: str) -> Tuple[List[ListenerConfig], List[str]]:
    """Build listener configs from a "listeners" object, collecting problems."""
    listeners: List[ListenerConfig] = []
    errors: List[str] = []

    for index, entry in enumerate(raw.get("http", [])):
        where = f"{origin}: listeners.http[{index}]"
        address = entry.get("address")
        socket_number = entry.get("socket_number")

        if address is not None and socket_number is not None:
            errors.append(f'{where}: cannot set both "address" and "socket_number" for the same listener')
            continue
        if address is None and socket_number is None:
            errors.append(f'{where}: a listener must have either "address" or "socket_number" set')
            continue
        if address is not None and not address.startswith("/"):
            try:
                split_address(address)
            except ValueError as e:
                errors.append(f"{where}: {e}")
                continue

        tls = None
        if "tls" in entry:
            tls = ListenerTLS(cert_file=entry["tls"]["cert_file"], key_file=entry["tls"]["key_file"])
        listeners.append(ListenerConfig(address=address, socket_number=socket_number, tls=tls))

    return listeners, errors
