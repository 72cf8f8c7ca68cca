"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_HOST = "127.0.0.2"
DEFAULT_PORT = 6969


def parse_bind(value: str) -> tuple[str, int]:
    """Split a ``host:port`` bind address, accepting ``[v6]:port`` too."""
    host, sep, port = value.strip().rpartition(":")
    if not sep or not host:
        raise ValueError(f"Expected HOST:PORT, got {value!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        number = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in bind address {value!r}") from None
    if not 0 < number < 65536:
        raise ValueError(f"Port out of range in bind address {value!r}")
    return host, number


@dataclass(slots=True)
class AppConfig:
    content_path: Path | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    serve_threads: int = 4
    reload_interval: float = 0.256
    use_git_ignore: bool = True

    def resolve_content_path(self, base_dir: Path | None = None) -> Path:
        """Canonical content root; the current directory when unset."""
        path = Path(self.content_path) if self.content_path is not None else Path.cwd()
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        return Path(os.path.realpath(path))
