"""Data models served by the history API."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

UTC = timezone.utc
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MILLISECOND = timedelta(milliseconds=1)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def _epoch_millis(moment: datetime) -> int:
    return (_as_utc(moment) - _EPOCH) // _MILLISECOND


def _delta_millis(delta: timedelta) -> int:
    """Whole milliseconds in ``delta``, truncated toward zero."""
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return micros // 1000 if micros >= 0 else -((-micros) // 1000)


def _format_datetime(moment: datetime) -> str:
    moment = _as_utc(moment)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    micros = moment.microsecond
    if micros:
        if micros % 1000 == 0:
            text += f".{micros // 1000:03d}"
        else:
            text += f".{micros:06d}"
    return text + "Z"


class ApplicationStatus(Enum):
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"


class JobStatus(Enum):
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"


@dataclass(kw_only=True)
class ApplicationAttemptInfo:
    """A single attempt of a Spark application."""

    attempt_id: str | None
    start_time: datetime
    end_time: datetime
    last_updated: datetime
    duration: int
    spark_user: str
    completed: bool
    app_spark_version: str
    start_time_epoch: int
    end_time_epoch: int
    last_updated_epoch: int

    @classmethod
    def create(
        cls,
        attempt_id: str | None,
        start_time: datetime,
        end_time: datetime,
        last_updated: datetime,
        spark_user: str,
        completed: bool,
        app_spark_version: str,
    ) -> "ApplicationAttemptInfo":
        """Build an attempt, deriving its duration and epoch fields."""
        start_time = _as_utc(start_time)
        end_time = _as_utc(end_time)
        last_updated = _as_utc(last_updated)
        finish = end_time if completed else datetime.now(UTC)
        return cls(
            attempt_id=attempt_id,
            start_time=start_time,
            end_time=end_time,
            last_updated=last_updated,
            duration=_delta_millis(finish - start_time),
            spark_user=spark_user,
            completed=completed,
            app_spark_version=app_spark_version,
            start_time_epoch=_epoch_millis(start_time),
            end_time_epoch=_epoch_millis(end_time),
            last_updated_epoch=_epoch_millis(last_updated),
        )


@dataclass(kw_only=True)
class ApplicationInfo:
    """A Spark application with its attempts."""

    id: str
    name: str
    cores_granted: int | None = None
    max_cores: int | None = None
    cores_per_executor: int | None = None
    memory_per_executor_mb: int | None = None
    attempts: list[ApplicationAttemptInfo] = field(default_factory=list)


@dataclass(kw_only=True)
class JobData:
    job_id: int
    name: str
    description: str | None = None
    status: JobStatus
    num_tasks: int = 0
    num_active_tasks: int = 0
    num_completed_tasks: int = 0
    num_skipped_tasks: int = 0
    num_failed_tasks: int = 0
    num_killed_tasks: int = 0
    num_active_stages: int = 0
    num_completed_stages: int = 0
    num_skipped_stages: int = 0
    num_failed_stages: int = 0


@dataclass(kw_only=True)
class MemoryMetrics:
    used_on_heap_storage_memory: int
    used_off_heap_storage_memory: int
    total_on_heap_storage_memory: int
    total_off_heap_storage_memory: int


@dataclass(kw_only=True)
class ResourceInformation:
    name: str
    addresses: list[str] = field(default_factory=list)


@dataclass(kw_only=True)
class ExecutorSummary:
    id: str
    host_port: str
    is_active: bool
    rdd_blocks: int = 0
    memory_used: int = 0
    disk_used: int = 0
    total_cores: int = 0
    max_tasks: int = 0
    active_tasks: int = 0
    failed_tasks: int = 0
    completed_tasks: int = 0
    total_tasks: int = 0
    total_duration: int = 0
    total_gc_time: int = 0
    total_input_bytes: int = 0
    total_shuffle_read: int = 0
    total_shuffle_write: int = 0
    is_excluded: bool = False
    max_memory: int = 0
    add_time: datetime
    remove_time: datetime | None = None
    remove_reason: str | None = None
    executor_logs: dict[str, str] = field(default_factory=dict)
    memory_metrics: MemoryMetrics | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    resources: dict[str, ResourceInformation] = field(default_factory=dict)
    resource_profile_id: int = 0
    excluded_in_stages: list[int] = field(default_factory=list)


@dataclass(kw_only=True)
class RddDataDistribution:
    address: str
    memory_used: int
    memory_remaining: int
    disk_used: int


@dataclass(kw_only=True)
class RddStorageInfo:
    id: int
    name: str
    num_partitions: int
    num_cached_partitions: int
    storage_level: str
    memory_size: int
    disk_size: int
    data_distributions: list[RddDataDistribution] = field(default_factory=list)


@dataclass(kw_only=True)
class RuntimeInfo:
    java_version: str
    java_home: str
    scala_version: str


@dataclass(kw_only=True)
class ApplicationEnvironmentInfo:
    runtime: RuntimeInfo
    spark_properties: list[tuple[str, str]] = field(default_factory=list)
    hadoop_properties: list[tuple[str, str]] = field(default_factory=list)
    system_properties: list[tuple[str, str]] = field(default_factory=list)
    metrics_properties: list[tuple[str, str]] = field(default_factory=list)
    classpath_entries: list[tuple[str, str]] = field(default_factory=list)


@dataclass(kw_only=True)
class VersionInfo:
    version: str


def _camel(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(part.capitalize() for part in rest)


def _convert(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            _camel(f.name): _convert(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _format_datetime(value)
    if isinstance(value, dict):
        return {key: _convert(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_convert(item) for item in value]
    return value


def to_camel_dict(obj: Any) -> dict[str, Any]:
    """Convert a model into a JSON-ready dict with camelCase keys."""
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        raise TypeError(f"expected a dataclass instance, got {type(obj).__name__}")
    return _convert(obj)