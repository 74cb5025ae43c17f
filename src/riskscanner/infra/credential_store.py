from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path

from ..core.domain.models import ProviderCredential

logger = logging.getLogger(__name__)

CREDENTIAL_FILE = "credentials.json"


class FileCredentialStore:
    """The single provider credential record, kept as a small JSON file (mode 600)."""

    def __init__(self, *, data_dir: Path) -> None:
        self._path = data_dir / CREDENTIAL_FILE
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ProviderCredential | None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            data = json.loads(raw)
            return ProviderCredential(
                provider=data["provider"],
                model=data.get("model", ""),
                value=data.get("value", ""),
                encrypted=bool(data.get("encrypted", False)),
                updated_at=datetime.fromisoformat(data["updated_at"]),
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable credential file %s: %s", self._path, e)
            return None

    def save(self, credential: ProviderCredential) -> None:
        record = {
            "provider": credential.provider,
            "model": credential.model,
            "value": credential.value,
            "encrypted": credential.encrypted,
            "updated_at": credential.updated_at.isoformat(),
        }
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".cred", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(record, fh)
                os.chmod(tmp, 0o600)
                os.replace(tmp, self._path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
