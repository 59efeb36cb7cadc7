"""Reading Spark event logs from HDFS."""

from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, TypeVar

from .spark_events import SparkEvent, parse_event_lines

log = logging.getLogger(__name__)

_T = TypeVar("_T")

_APP_PREFIXES = ("application_", "app-", "eventlog_v2_")

DEFAULT_CONNECTION_TIMEOUT_MS = 30000
DEFAULT_READ_TIMEOUT_MS = 60000


class HdfsError(Exception):
    """Raised when an HDFS operation fails or times out."""


@dataclass(frozen=True)
class FileStatus:
    """Status of one HDFS path as reported by a client."""

    path: str
    length: int = 0
    isdir: bool = False
    modification_time: int = 0


class HdfsClient(abc.ABC):
    """The operations the reader needs from an HDFS client."""

    @abc.abstractmethod
    async def list_status(self, path: str, recursive: bool) -> list[FileStatus]:
        """List the entries of a directory."""

    @abc.abstractmethod
    async def get_file_info(self, path: str) -> FileStatus:
        """Return the status of a single path."""

    @abc.abstractmethod
    async def read(self, path: str) -> bytes:
        """Return the full contents of a file."""


@dataclass(frozen=True)
class HdfsFileInfo:
    """File information from HDFS."""

    path: str
    size: int
    modification_time: int
    is_directory: bool


def _require(data: dict[str, Any], key: str, kind: type) -> Any:
    if key not in data:
        raise ValueError(f"missing field {key!r}")
    value = data[key]
    if kind is int and (isinstance(value, bool) or not isinstance(value, int)):
        raise ValueError(f"field {key!r} must be an integer")
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} must be {kind.__name__}")
    return value


@dataclass
class FileMetadata:
    """What is known about an event file the last time it was processed."""

    path: str
    last_processed: int
    file_size: int
    last_index: int | None = None
    is_complete: bool = False

    def to_dict(self) -> dict[str, Any]:
        """A JSON-ready mapping of this record."""
        return {
            "path": self.path,
            "last_processed": self.last_processed,
            "file_size": self.file_size,
            "last_index": self.last_index,
            "is_complete": self.is_complete,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileMetadata":
        """Build a record from a mapping; raise ValueError on bad input."""
        if not isinstance(data, dict):
            raise ValueError("file metadata must be an object")
        last_index = data.get("last_index")
        if last_index is not None and (
            isinstance(last_index, bool) or not isinstance(last_index, int)
        ):
            raise ValueError("field 'last_index' must be an integer or null")
        return cls(
            path=_require(data, "path", str),
            last_processed=_require(data, "last_processed", int),
            file_size=_require(data, "file_size", int),
            last_index=last_index,
            is_complete=_require(data, "is_complete", bool),
        )


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def _is_event_file_name(filename: str) -> bool:
    return (
        filename.startswith("events")
        or "eventLog" in filename
        or filename.endswith(".inprogress")
    )


class HdfsReader:
    """Reads Spark event logs through an HDFS client, with timeouts."""

    def __init__(
        self,
        client: HdfsClient,
        connection_timeout_ms: int | None = DEFAULT_CONNECTION_TIMEOUT_MS,
        read_timeout_ms: int | None = DEFAULT_READ_TIMEOUT_MS,
    ) -> None:
        self.client = client
        self.connection_timeout_ms = (
            DEFAULT_CONNECTION_TIMEOUT_MS if connection_timeout_ms is None else connection_timeout_ms
        )
        self.read_timeout_ms = (
            DEFAULT_READ_TIMEOUT_MS if read_timeout_ms is None else read_timeout_ms
        )

    async def _call(
        self, operation: Awaitable[_T], timeout_ms: int, failure: str, timeout_text: str
    ) -> _T:
        try:
            return await asyncio.wait_for(operation, timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise HdfsError(f"{timeout_text}: {timeout_ms} ms") from None
        except Exception as exc:
            raise HdfsError(f"{failure}: {exc}") from exc

    async def list_applications(self, base_path: str) -> list[str]:
        """Names of application directories directly under ``base_path``."""
        log.debug("Listing applications in HDFS: %s", base_path)
        entries = await self._call(
            self.client.list_status(base_path, False),
            self.connection_timeout_ms,
            f"Failed to list HDFS directory {base_path}",
            f"Timeout listing HDFS directory {base_path}",
        )
        app_ids = [
            name
            for name in (_basename(entry.path) for entry in entries if entry.isdir)
            if name.startswith(_APP_PREFIXES)
        ]
        log.debug("Found %d applications in HDFS", len(app_ids))
        return app_ids

    async def list_event_files(self, base_path: str, app_id: str) -> list[str]:
        """Full paths of the event log files of one application."""
        app_path = f"{base_path}/{app_id}"
        log.debug("Listing event files for app: %s at HDFS path: %s", app_id, app_path)
        entries = await self._call(
            self.client.list_status(app_path, False),
            self.connection_timeout_ms,
            f"Failed to list HDFS app directory {app_path}",
            f"Timeout listing HDFS app directory {app_path}",
        )
        event_files = [
            entry.path
            for entry in entries
            if not entry.isdir and _is_event_file_name(_basename(entry.path))
        ]
        log.debug("Found %d event files for app %s in HDFS", len(event_files), app_id)
        return event_files

    async def read_events(self, file_path: str, app_id: str) -> list[SparkEvent]:
        """Read and parse the events of one file."""
        log.debug("Reading events from HDFS file: %s", file_path)
        data = await self._call(
            self.client.read(file_path),
            self.read_timeout_ms,
            f"Failed to read HDFS file {file_path}",
            f"Timeout reading HDFS file {file_path}",
        )
        try:
            content = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise HdfsError(f"Invalid UTF-8 in HDFS file {file_path}: {exc}") from exc
        events = parse_event_lines(content, app_id)
        log.info("Parsed %d events from HDFS file %s", len(events), file_path)
        return events

    async def read_application_events(self, base_path: str, app_id: str) -> list[SparkEvent]:
        """All events of one application, ordered by timestamp."""
        event_files = await self.list_event_files(base_path, app_id)
        if not event_files:
            raise HdfsError(f"No event files found for application: {app_id}")
        all_events: list[SparkEvent] = []
        for file_path in event_files:
            try:
                all_events.extend(await self.read_events(file_path, app_id))
            except HdfsError as exc:
                log.warning("Failed to read events from HDFS file %s: %s", file_path, exc)
        all_events.sort(key=lambda event: event.timestamp)
        log.info(
            "Total %d events loaded for application %s from HDFS", len(all_events), app_id
        )
        return all_events

    async def scan_all_events(self, base_path: str) -> list[SparkEvent]:
        """Events of every application under ``base_path``, ordered by timestamp."""
        app_ids = await self.list_applications(base_path)
        log.info("Scanning %d applications for events in HDFS", len(app_ids))
        all_events: list[SparkEvent] = []
        for app_id in app_ids:
            try:
                events = await self.read_application_events(base_path, app_id)
            except HdfsError as exc:
                log.warning("Failed to load events for %s from HDFS: %s", app_id, exc)
                continue
            log.debug("Loaded %d events for %s from HDFS", len(events), app_id)
            all_events.extend(events)
        all_events.sort(key=lambda event: event.timestamp)
        log.info("Total %d events scanned from HDFS", len(all_events))
        return all_events

    async def health_check(self) -> bool:
        """Return True if the root directory can be listed; raise HdfsError otherwise."""
        log.debug("Performing HDFS health check")
        try:
            await self._call(
                self.client.list_status("/", False),
                self.connection_timeout_ms,
                "HDFS health check failed",
                "HDFS health check timeout",
            )
        except HdfsError as exc:
            log.warning("%s", exc)
            raise
        log.debug("HDFS health check passed")
        return True

    async def get_file_info(self, file_path: str) -> HdfsFileInfo:
        """Size, modification time and kind of one path."""
        log.debug("Getting HDFS file info for: %s", file_path)
        status = await self._call(
            self.client.get_file_info(file_path),
            self.connection_timeout_ms,
            f"Failed to get HDFS file info for {file_path}",
            f"Timeout getting HDFS file info for {file_path}",
        )
        return HdfsFileInfo(
            path=file_path,
            size=status.length,
            modification_time=status.modification_time,
            is_directory=status.isdir,
        )