import json
from datetime import datetime, timedelta, timezone

import pytest

from sparkhistory.spark_events import (
    SparkEvent,
    SparkEventError,
    SparkEventType,
    parse_event_lines,
    parse_event_type,
)

UTC = timezone.utc

KERBEROS_SAMPLE_LOG = """{"Event":"SparkListenerLogStart","Spark Version":"3.4.0"}
{"Event":"SparkListenerApplicationStart","App Name":"KerberosTestApp","App ID":"app-20231120150000-0001","Timestamp":1700488800000,"User":"hdfs-user"}
{"Event":"SparkListenerJobStart","Job ID":0,"Submission Time":1700488801000,"Stage Infos":[]}
{"Event":"SparkListenerJobEnd","Job ID":0,"Completion Time":1700488802000,"Job Result":{"Result":"JobSucceeded"}}
{"Event":"SparkListenerApplicationEnd","App ID":"app-20231120150000-0001","Timestamp":1700488803000}
"""


def sample_event_json(app_id, event_type, timestamp):
    return json.dumps({"Event": event_type, "Timestamp": timestamp, "App ID": app_id})


def test_pipeline_reads_three_events():
    app_id = "application_test_pipeline"
    content = "".join(
        sample_event_json(app_id, "SparkListenerApplicationStart", 1640000000000 + i * 1000)
        + "\n"
        for i in range(3)
    )
    events = parse_event_lines(content, app_id)
    assert len(events) == 3
    assert all(e.event_type_str() == "SparkListenerApplicationStart" for e in events)
    assert all(e.app_id == app_id for e in events)
    assert [e.job_id for e in events] == [None, None, None]


def test_batch_simulation_collects_five_events():
    app_id = "application_test_batch"
    file1 = "\n".join(
        sample_event_json(app_id, "SparkListenerApplicationStart", 1640000000000 + i)
        for i in range(2)
    )
    file2 = "\n".join(
        sample_event_json(app_id, "SparkListenerJobStart", 1640000000000 + i)
        for i in range(2, 5)
    )
    events = parse_event_lines(file1, app_id) + parse_event_lines(file2, app_id)
    assert len(events) == 5
    assert [e.event_type for e in events].count(SparkEventType.JOB_START) == 3
    assert events[-1].timestamp == datetime.fromtimestamp(1640000000, UTC) + timedelta(
        milliseconds=4
    )


def test_timestamp_from_millis():
    raw = json.loads(
        sample_event_json("application_test_direct", "SparkListenerApplicationStart", 1640000000000)
    )
    event = SparkEvent.from_json(raw, "application_test_direct")
    assert event.timestamp == datetime.fromtimestamp(1640000000, UTC)
    assert event.raw_data == raw


def test_get_id():
    raw = json.loads(
        sample_event_json("application_test_direct", "SparkListenerApplicationStart", 1640000000000)
    )
    event = SparkEvent.from_json(raw, "application_test_direct")
    assert event.get_id() == (
        "application_test_direct_1640000000000_SparkListenerApplicationStart_0"
    )


def test_kerberos_sample_log():
    events = parse_event_lines(KERBEROS_SAMPLE_LOG, "app-20231120150000-0001")
    assert len(events) == 5
    assert events[0].event_type is SparkEventType.OTHER
    assert events[0].event_type_str() == "SparkListenerLogStart"
    assert events[2].job_id == 0
    assert events[3].event_type is SparkEventType.JOB_END


def test_blank_and_invalid_lines_are_skipped():
    content = '\n   \nnot json\n{"Timestamp": 1}\n42\n{"Event":"SparkListenerJobEnd","Job ID":7}\n'
    events = parse_event_lines(content, "app-x")
    assert len(events) == 1
    assert events[0].job_id == 7


def test_missing_event_field_raises():
    with pytest.raises(SparkEventError, match="Missing Event field"):
        SparkEvent.from_json({"Timestamp": 1}, "app")
    with pytest.raises(SparkEventError):
        SparkEvent.from_json({"Event": 5}, "app")
    with pytest.raises(SparkEventError):
        SparkEvent.from_json([1, 2], "app")


def test_missing_timestamp_uses_now():
    before = datetime.now(UTC)
    event = SparkEvent.from_json({"Event": "SparkListenerJobStart"}, "app")
    after = datetime.now(UTC)
    assert before <= event.timestamp <= after


def test_parse_event_type_round_trip():
    for member in SparkEventType:
        if member is not SparkEventType.OTHER:
            assert parse_event_type(member.value) is member
    assert parse_event_type("SparkListenerLogStart") is SparkEventType.OTHER


def test_stage_fields():
    raw = {"Event": "SparkListenerStageCompleted", "Stage Info": {"Stage ID": 3}}
    event = SparkEvent.from_json(raw, "app")
    assert event.stage_id == 3
    assert event.task_id is None


def test_task_start_fields():
    raw = {
        "Event": "SparkListenerTaskStart",
        "Task Info": {"Task ID": 11, "Stage ID": 2, "Executor ID": "1", "Host": "worker-a"},
    }
    event = SparkEvent.from_json(raw, "app")
    assert (event.task_id, event.stage_id, event.executor_id, event.host) == (
        11,
        2,
        "1",
        "worker-a",
    )
    assert event.duration_ms is None


def test_task_end_fields():
    raw = {
        "Event": "SparkListenerTaskEnd",
        "Task Info": {"Task ID": 12, "Stage ID": 2, "Executor ID": "3", "Host": "worker-b"},
        "Task Metrics": {"Executor Run Time": 250},
    }
    event = SparkEvent.from_json(raw, "app")
    assert event.duration_ms == 250
    assert event.task_id == 12
    assert event.get_id().endswith("_SparkListenerTaskEnd_12")


def test_executor_added_fields():
    raw = {
        "Event": "SparkListenerExecutorAdded",
        "Executor ID": "4",
        "Executor Info": {"Host": "worker-c", "Total Cores": 8},
    }
    event = SparkEvent.from_json(raw, "app")
    assert (event.executor_id, event.host, event.cores) == ("4", "worker-c", 8)


def test_executor_removed_fields():
    raw = {"Event": "SparkListenerExecutorRemoved", "Executor ID": "4", "Executor Info": {"Host": "h"}}
    event = SparkEvent.from_json(raw, "app")
    assert event.executor_id == "4"
    assert event.host is None


def test_non_integer_ids_are_ignored():
    event = SparkEvent.from_json({"Event": "SparkListenerJobStart", "Job ID": True}, "app")
    assert event.job_id is None
    event = SparkEvent.from_json({"Event": "SparkListenerJobStart", "Job ID": "1"}, "app")
    assert event.job_id is None