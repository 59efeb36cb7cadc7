"""Spark listener events and the records derived from them."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

log = logging.getLogger(__name__)

UTC = timezone.utc
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MILLISECOND = timedelta(milliseconds=1)
_I64_MIN, _I64_MAX = -(2**63), 2**63 - 1


class SparkEventError(ValueError):
    """Raised when a raw event cannot be turned into a SparkEvent."""


class SparkEventType(Enum):
    APPLICATION_START = "SparkListenerApplicationStart"
    APPLICATION_END = "SparkListenerApplicationEnd"
    JOB_START = "SparkListenerJobStart"
    JOB_END = "SparkListenerJobEnd"
    STAGE_SUBMITTED = "SparkListenerStageSubmitted"
    STAGE_COMPLETED = "SparkListenerStageCompleted"
    TASK_START = "SparkListenerTaskStart"
    TASK_END = "SparkListenerTaskEnd"
    EXECUTOR_ADDED = "SparkListenerExecutorAdded"
    EXECUTOR_REMOVED = "SparkListenerExecutorRemoved"
    BLOCK_MANAGER_ADDED = "SparkListenerBlockManagerAdded"
    BLOCK_MANAGER_REMOVED = "SparkListenerBlockManagerRemoved"
    ENVIRONMENT_UPDATE = "SparkListenerEnvironmentUpdate"
    SQL_EXECUTION_START = "org.apache.spark.sql.execution.ui.SparkListenerSQLExecutionStart"
    SQL_EXECUTION_END = "org.apache.spark.sql.execution.ui.SparkListenerSQLExecutionEnd"
    OTHER = "Other"


_KNOWN_TYPES = {
    member.value: member for member in SparkEventType if member is not SparkEventType.OTHER
}


def parse_event_type(name: str) -> SparkEventType:
    """Map a listener event name to its type; unknown names give OTHER."""
    return _KNOWN_TYPES.get(name, SparkEventType.OTHER)


def _get(obj: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _as_int(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and _I64_MIN <= value <= _I64_MAX:
        return value
    return None


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _to_i32(value: int | None) -> int | None:
    if value is None:
        return None
    return ((value + 2**31) % 2**32) - 2**31


def _timestamp_from_millis(millis: int | None) -> datetime:
    if millis is None:
        return datetime.now(UTC)
    try:
        return _EPOCH + timedelta(milliseconds=millis)
    except OverflowError:
        return datetime.now(UTC)


def _extract_fields(event_type: SparkEventType, raw: Any) -> dict[str, Any]:
    if event_type in (SparkEventType.JOB_START, SparkEventType.JOB_END):
        return {"job_id": _as_int(_get(raw, "Job ID"))}

    if event_type in (SparkEventType.STAGE_SUBMITTED, SparkEventType.STAGE_COMPLETED):
        return {"stage_id": _as_int(_get(raw, "Stage Info", "Stage ID"))}

    if event_type in (SparkEventType.TASK_START, SparkEventType.TASK_END):
        fields = {
            "task_id": _as_int(_get(raw, "Task Info", "Task ID")),
            "stage_id": _as_int(_get(raw, "Task Info", "Stage ID")),
            "executor_id": _as_str(_get(raw, "Task Info", "Executor ID")),
            "host": _as_str(_get(raw, "Task Info", "Host")),
        }
        if event_type is SparkEventType.TASK_END:
            fields["duration_ms"] = _as_int(_get(raw, "Task Metrics", "Executor Run Time"))
        return fields

    if event_type is SparkEventType.EXECUTOR_ADDED:
        return {
            "executor_id": _as_str(_get(raw, "Executor ID")),
            "host": _as_str(_get(raw, "Executor Info", "Host")),
            "cores": _to_i32(_as_int(_get(raw, "Executor Info", "Total Cores"))),
        }

    if event_type is SparkEventType.EXECUTOR_REMOVED:
        return {"executor_id": _as_str(_get(raw, "Executor ID"))}

    return {}


@dataclass
class SparkEvent:
    """A parsed listener event with its frequently queried fields pulled out."""

    event_type: SparkEventType
    event_name: str
    timestamp: datetime
    app_id: str
    raw_data: Any
    job_id: int | None = None
    stage_id: int | None = None
    task_id: int | None = None
    duration_ms: int | None = None
    executor_id: str | None = None
    host: str | None = None
    memory_bytes: int | None = None
    cores: int | None = None

    @classmethod
    def from_json(cls, raw_event: Any, app_id: str) -> "SparkEvent":
        """Parse a decoded JSON event; raise SparkEventError without an Event name."""
        name = _as_str(_get(raw_event, "Event"))
        if name is None:
            raise SparkEventError("Missing Event field")
        event_type = parse_event_type(name)
        timestamp = _timestamp_from_millis(_as_int(_get(raw_event, "Timestamp")))
        return cls(
            event_type=event_type,
            event_name=name,
            timestamp=timestamp,
            app_id=app_id,
            raw_data=raw_event,
            **_extract_fields(event_type, raw_event),
        )

    def event_type_str(self) -> str:
        """The listener name of this event."""
        if self.event_type is SparkEventType.OTHER:
            return self.event_name
        return self.event_type.value

    def get_id(self) -> str:
        """An identifier built from app, timestamp, type and task."""
        millis = (self.timestamp - _EPOCH) // _MILLISECOND
        task_id = 0 if self.task_id is None else self.task_id
        return f"{self.app_id}_{millis}_{self.event_type_str()}_{task_id}"


def parse_event_lines(content: str, app_id: str) -> list[SparkEvent]:
    """Parse newline-delimited JSON events, skipping blank or unparseable lines."""
    events = []
    for line_num, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError as exc:
            log.warning("Invalid JSON at line %d: %s", line_num, exc)
            continue
        try:
            events.append(SparkEvent.from_json(raw, app_id))
        except SparkEventError as exc:
            log.warning("Failed to parse event at line %d: %s", line_num, exc)
    return events


@dataclass(kw_only=True)
class ApplicationAttempt:
    attempt_id: str
    start_time: datetime
    end_time: datetime
    duration: int | None = None
    spark_user: str
    completed: bool
    app_spark_version: str


class JobStatus(Enum):
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


@dataclass(kw_only=True)
class JobInfo:
    job_id: int
    name: str
    submission_time: datetime
    completion_time: datetime | None = None
    status: JobStatus
    num_tasks: int = 0
    num_active_tasks: int = 0
    num_completed_tasks: int = 0
    num_skipped_tasks: int = 0
    num_failed_tasks: int = 0
    num_active_stages: int = 0
    num_completed_stages: int = 0
    num_skipped_stages: int = 0
    num_failed_stages: int = 0


class StageStatus(Enum):
    ACTIVE = "Active"
    COMPLETE = "Complete"
    FAILED = "Failed"
    PENDING = "Pending"


@dataclass(kw_only=True)
class StageInfo:
    stage_id: int
    attempt_id: int
    name: str
    num_tasks: int
    status: StageStatus
    submission_time: datetime | None = None
    first_task_launched_time: datetime | None = None
    completion_time: datetime | None = None
    failure_reason: str | None = None
    details: str = ""
    accumulables: dict[str, Any] = field(default_factory=dict)


@dataclass(kw_only=True)
class InputMetrics:
    bytes_read: int
    records_read: int


@dataclass(kw_only=True)
class OutputMetrics:
    bytes_written: int
    records_written: int


@dataclass(kw_only=True)
class ShuffleReadMetrics:
    remote_blocks_fetched: int
    local_blocks_fetched: int
    fetch_wait_time: int
    remote_bytes_read: int
    local_bytes_read: int
    total_records_read: int


@dataclass(kw_only=True)
class ShuffleWriteMetrics:
    bytes_written: int
    write_time: int
    records_written: int


@dataclass(kw_only=True)
class TaskMetrics:
    executor_deserialize_time: int = 0
    executor_deserialize_cpu_time: int = 0
    executor_run_time: int = 0
    executor_cpu_time: int = 0
    result_size: int = 0
    jvm_gc_time: int = 0
    result_serialization_time: int = 0
    memory_bytes_spilled: int = 0
    disk_bytes_spilled: int = 0
    peak_execution_memory: int = 0
    input_metrics: InputMetrics | None = None
    output_metrics: OutputMetrics | None = None
    shuffle_read_metrics: ShuffleReadMetrics | None = None
    shuffle_write_metrics: ShuffleWriteMetrics | None = None


@dataclass(kw_only=True)
class TaskInfo:
    task_id: int
    index: int
    attempt: int
    launch_time: datetime
    executor_id: str
    host: str
    task_locality: str
    speculative: bool = False
    getting_result_time: datetime | None = None
    finish_time: datetime | None = None
    failed: bool = False
    killed: bool = False
    accumulables: dict[str, Any] = field(default_factory=dict)
    task_metrics: TaskMetrics | None = None