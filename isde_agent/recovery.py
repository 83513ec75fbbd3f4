import json
import time
from pathlib import Path
from typing import Optional

from config import RECOVERY_DIR, RECOVERY_MAX_AGE


class RecoveryStore:
    """On-disk snapshot of a running session, so a crashed run can resume."""

    def __init__(self, directory: Path = RECOVERY_DIR, max_age: float = RECOVERY_MAX_AGE):
        self.directory = Path(directory)
        self.max_age = max_age

    def _path(self, tab_id: str) -> Path:
        return self.directory / f"{tab_id}.json"

    def save(self, tab_id: str, config_json: str, step: str, url: str = "") -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        record = {
            "tab_id": tab_id,
            "config": json.loads(config_json),
            "step": step,
            "url": url,
            "timestamp": time.time(),
        }
        with open(self._path(tab_id), "w") as f:
            json.dump(record, f, indent=2)

    def load(self, tab_id: str) -> Optional[dict]:
        path = self._path(tab_id)
        if not path.exists():
            return None
        with open(path) as f:
            record = json.load(f)
        if time.time() - record.get("timestamp", 0) > self.max_age:
            print(f"  [recovery] Discarding expired snapshot for {tab_id}", flush=True)
            path.unlink(missing_ok=True)
            return None
        return record

    def latest(self) -> Optional[dict]:
        """Newest snapshot that has not expired."""
        if not self.directory.exists():
            return None
        candidates = sorted(self.directory.glob("*.json"), key=lambda p: p.stat().st_mtime, reverse=True)
        for path in candidates:
            record = self.load(path.stem)
            if record:
                return record
        return None

    def clear(self, tab_id: str) -> None:
        self._path(tab_id).unlink(missing_ok=True)
