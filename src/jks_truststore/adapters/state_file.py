"""
JSON state file adapter — persists the id/timestamp/jks triple on disk.

Adapter layer — implements the StateRepository port with a single JSON
document. Writes go to a temporary file in the same directory and are then
renamed over the target, so a failed save leaves the previous state intact.

    {"id": "<40 hex>", "timestamp": "2024-05-01T10:00:00Z", "jks": "<base64>"}
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import structlog

from jks_truststore.domain.models import TrustStoreState
from jks_truststore.railway import ErrorCode
from jks_truststore.railway.result import Result

log = structlog.get_logger()

_FIELDS = ("id", "timestamp", "jks")


class JsonStateRepository:
    """
    Store trust-store state in a JSON file.

    Implements the StateRepository port.
    All exceptions are caught at this adapter boundary via Result.from_computation().
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Result[TrustStoreState]:
        """Return the stored state, NOT_FOUND when the file is absent."""
        if not self._path.exists():
            return Result.failure(ErrorCode.NOT_FOUND, f"No trust store state at {self._path}")
        return Result.from_computation(
            self._read,
            ErrorCode.PERSIST_ERROR,
            f"Failed to read trust store state from {self._path}",
        )

    def save(self, state: TrustStoreState) -> Result[TrustStoreState]:
        """Atomically replace the state file; the previous state survives a failure."""
        return Result.from_computation(
            lambda: self._write(state),
            ErrorCode.PERSIST_ERROR,
            f"Failed to persist trust store state to {self._path}",
        )

    def clear(self) -> Result[bool]:
        """Remove the state file. Returns True when a file was removed."""
        return Result.from_computation(
            self._remove,
            ErrorCode.PERSIST_ERROR,
            f"Failed to clear trust store state at {self._path}",
        )

    def _read(self) -> TrustStoreState:
        document = json.loads(self._path.read_text(encoding="utf-8"))
        missing = [name for name in _FIELDS if not isinstance(document.get(name), str)]
        if missing:
            raise ValueError(f"state file is missing fields: {', '.join(missing)}")
        return TrustStoreState(id=document["id"], timestamp=document["timestamp"], jks=document["jks"])

    def _write(self, state: TrustStoreState) -> TrustStoreState:
        document = {"id": state.id, "timestamp": state.timestamp, "jks": state.jks}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, sort_keys=True)
                handle.write("\n")
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        log.info("state.saved", path=str(self._path), id=state.id)
        return state

    def _remove(self) -> bool:
        existed = self._path.exists()
        self._path.unlink(missing_ok=True)
        log.info("state.cleared", path=str(self._path), existed=existed)
        return existed
