"""
Registry hostname handling.

Hostnames are stored in comparison form (IDNA-encoded, lower case, the
default HTTPS port removed) and shown to clients in display form.
"""

import re
from dataclasses import dataclass

_LABEL_RE = re.compile(r'^(?!-)[a-z0-9-]{1,63}(?<!-)$')
DEFAULT_PORT = 443


@dataclass(frozen=True, slots=True)
class Hostname:
    """A registry hostname in comparison form, optionally with a port."""
    host: str
    port: int = DEFAULT_PORT

    @classmethod
    def parse(cls, raw: str) -> "Hostname":
        """Normalize a user-supplied hostname, raising ValueError if invalid."""
        raw = raw.strip()
        if not raw:
            raise ValueError("hostname is empty")

        host, port = raw, DEFAULT_PORT
        if ":" in raw:
            host, _, port_text = raw.rpartition(":")
            if not port_text.isdigit():
                raise ValueError(f"invalid port {port_text!r}")
            port = int(port_text)
            if not 0 < port < 65536:
                raise ValueError(f"port {port} out of range")

        try:
            ascii_host = host.rstrip(".").encode("idna").decode("ascii").lower()
        except UnicodeError as e:
            raise ValueError(f"invalid hostname {host!r}: {e}") from e

        labels = ascii_host.split(".")
        for label in labels:
            if not _LABEL_RE.match(label):
                raise ValueError(f"invalid hostname {host!r}")
        return cls(ascii_host, port)

    def for_comparison(self) -> str:
        if self.port == DEFAULT_PORT:
            return self.host
        return f"{self.host}:{self.port}"

    def for_display(self) -> str:
        """Unicode form of the hostname, as a user would type it."""
        labels = []
        for label in self.host.split("."):
            if label.startswith("xn--"):
                label = label.encode("ascii").decode("idna")
            labels.append(label)
        host = ".".join(labels)
        if self.port == DEFAULT_PORT:
            return host
        return f"{host}:{self.port}"

    def __str__(self):
        return self.for_comparison()
