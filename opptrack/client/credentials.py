from __future__ import annotations

import json
from pathlib import Path

from ..observability.logging import get_logger

log = get_logger("credentials")


class CredentialStore:
    """
    Remembers the bearer token between sessions in a small JSON file.

    Any read or write failure is logged and treated as "no stored credential".
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> str | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            log.warning("credential_read_failed", path=str(self.path), error=str(e))
            return None
        try:
            payload = json.loads(raw)
        except ValueError:
            log.warning("credential_file_corrupt", path=str(self.path))
            return None
        token = payload.get("token") if isinstance(payload, dict) else None
        return str(token) if token else None

    def save(self, token: str) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({"token": str(token)}), encoding="utf-8")
        except OSError as e:
            log.warning("credential_write_failed", path=str(self.path), error=str(e))
            return False
        return True

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            log.warning("credential_remove_failed", path=str(self.path), error=str(e))
