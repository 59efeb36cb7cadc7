"""A small JSON-backed store tracking which event files were processed."""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from .hdfs_reader import FileMetadata

log = logging.getLogger(__name__)

METADATA_FILE_NAME = "file_metadata.json"


@dataclass(frozen=True)
class MetadataStats:
    """Counts of tracked files."""

    total_files: int
    complete_files: int
    incomplete_files: int


class MetadataStore:
    """Tracks file sizes so that only grown or new files are reloaded."""

    def __init__(self, metadata_path: str | Path) -> None:
        self.metadata_file = Path(metadata_path) / METADATA_FILE_NAME
        self._lock = threading.RLock()
        self._metadata: dict[str, FileMetadata] = {}
        if self.metadata_file.exists():
            try:
                self._load()
            except (OSError, ValueError) as exc:
                log.error("Failed to load existing metadata: %s", exc)

    def _load(self) -> None:
        content = self.metadata_file.read_text(encoding="utf-8")
        raw = json.loads(content)
        if not isinstance(raw, dict):
            raise ValueError("metadata file must hold a JSON object")
        loaded = {key: FileMetadata.from_dict(value) for key, value in raw.items()}
        with self._lock:
            self._metadata = loaded
        log.info("Loaded %d file metadata records", len(loaded))

    def _save(self) -> None:
        with self._lock:
            payload = {key: value.to_dict() for key, value in self._metadata.items()}
            self.metadata_file.parent.mkdir(parents=True, exist_ok=True)
            self.metadata_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        log.debug("Saved %d metadata records to disk", len(payload))

    def get_metadata(self, file_path: str) -> FileMetadata | None:
        """A copy of the record for ``file_path``, or None."""
        with self._lock:
            record = self._metadata.get(file_path)
            return dataclasses.replace(record) if record is not None else None

    def update_metadata(self, file_metadata: FileMetadata) -> None:
        """Store a record and write the store to disk."""
        with self._lock:
            self._metadata[file_metadata.path] = dataclasses.replace(file_metadata)
            self._save()

    def should_reload_file(self, file_path: str, current_size: int) -> bool:
        """True for unknown files and for files that have grown."""
        record = self.get_metadata(file_path)
        if record is None:
            return True
        return current_size > record.file_size

    def get_all_tracked_files(self) -> list[str]:
        """Paths of every tracked file."""
        with self._lock:
            return list(self._metadata)

    def remove_metadata(self, file_path: str) -> None:
        """Forget a file and write the store to disk."""
        with self._lock:
            self._metadata.pop(file_path, None)
            self._save()

    def get_stats(self) -> MetadataStats:
        """Counts of all, complete and incomplete tracked files."""
        with self._lock:
            total = len(self._metadata)
            complete = sum(1 for record in self._metadata.values() if record.is_complete)
        return MetadataStats(
            total_files=total,
            complete_files=complete,
            incomplete_files=total - complete,
        )