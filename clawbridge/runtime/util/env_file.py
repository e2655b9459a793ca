"""``.env`` file access for the bridge settings."""

from __future__ import annotations

import threading
from pathlib import Path


def _parse_line(line: str) -> tuple[str, str] | None:
    line = line.strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    if line.startswith("export "):
        line = line[len("export "):]
    key, _, value = line.partition("=")
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return key.strip(), value


class EnvFile:
    """A ``KEY=VALUE`` file that several request handlers may update at once."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def read(self, key: str) -> str:
        return self.read_all().get(key, "")

    def read_all(self) -> dict[str, str]:
        """Parse the file; a missing file reads as empty."""
        if not self.path.is_file():
            return {}
        entries: dict[str, str] = {}
        for raw in self.path.read_text(encoding="utf-8").splitlines():
            parsed = _parse_line(raw)
            if parsed:
                entries[parsed[0]] = parsed[1]
        return entries

    def write(self, **values: str) -> None:
        """Merge *values* into the file. An empty value deletes the key."""
        with self._lock:
            merged = self.read_all()
            merged.update(values)
            body = "".join(f'{k}="{v}"\n' for k, v in sorted(merged.items()) if v)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(body, encoding="utf-8")
