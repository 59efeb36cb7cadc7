# sparkhistory

Building blocks for a read-only Spark history service. The package parses
Spark listener event logs. It reads application directories through an
HDFS-style client that you supply. It also remembers which log files have
already been processed, so that later scans only reread the ones that
changed. The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To install the test tools as well:

```
pip install ".[test]"
```

## Parsing event logs

`sparkhistory.spark_events` turns JSON event lines into `SparkEvent`
objects. Each event carries:

- its type, as a `SparkEventType` member, and its original listener name
- a UTC timestamp, taken from the `Timestamp` field; when that field is
  missing, the time of parsing is used
- the decoded JSON
- commonly queried fields, where the event type has them: job, stage and
  task ids, executor id, host, cores, and task duration (the
  `Executor Run Time` of task end events)

```python
from sparkhistory.spark_events import SparkEvent, SparkEventType, parse_event_lines

content = (
    '{"Event": "SparkListenerJobStart", "Job ID": 3, "Timestamp": 1640000000000}\n'
    '{"Event": "SparkListenerApplicationEnd", "Timestamp": 1640000005000}\n'
)
events = parse_event_lines(content, "application_0001")

assert events[0].event_type is SparkEventType.JOB_START
assert events[0].job_id == 3
assert events[1].event_type_str() == "SparkListenerApplicationEnd"
```

`parse_event_lines` handles problem lines as follows:

- Blank lines are skipped.
- Lines that are not valid JSON are logged as warnings and left out.
- Lines that have no string `Event` field are also logged as warnings and
  left out.

`SparkEvent.from_json(raw_event, app_id)` builds a single event. It raises
`SparkEventError`, a subclass of `ValueError`, when the `Event` field is
missing.

Event names that the package does not know are still accepted:

- Their type is `SparkEventType.OTHER`.
- `event_type_str()` returns their original name.

`parse_event_type(name)` maps a listener name to its `SparkEventType`.

`SparkEvent.get_id()` builds an identifier from four parts, joined with
underscores: the application id, the timestamp in milliseconds, the event
name and the task id. The task id is `0` when the event has none.

The module also defines record types for parsed job, stage and task
information. These are `ApplicationAttempt`, `JobInfo`, `JobStatus`,
`StageInfo`, `StageStatus`, `TaskInfo`, `TaskMetrics`, `InputMetrics`,
`OutputMetrics`, `ShuffleReadMetrics` and `ShuffleWriteMetrics`.

## Reading through an HDFS client

`sparkhistory.hdfs_reader.HdfsReader` works against any object that
implements the abstract `HdfsClient` interface, which has three async
methods:

- `list_status(path, recursive)` returns a list of `FileStatus`.
- `get_file_info(path)` returns a `FileStatus`.
- `read(path)` returns the file contents as bytes.

`FileStatus` describes one entry: its path, length, whether it is a
directory, and its modification time.

The reader bounds every call with a timeout. Reads use `read_timeout_ms`
(60000 by default). Every other call uses `connection_timeout_ms` (30000
by default).

```python
from sparkhistory.hdfs_reader import HdfsReader

reader = HdfsReader(client, connection_timeout_ms=30000, read_timeout_ms=60000)
apps = await reader.list_applications("/spark-events")
events = await reader.read_application_events("/spark-events", apps[0])
```

The reader's methods:

- `list_applications(base_path)` returns the names of directories whose
  names start with `application_`, `app-` or `eventlog_v2_`.
- `list_event_files(base_path, app_id)` returns the full paths of files
  whose names start with `events`, contain `eventLog`, or end in
  `.inprogress`.
- `read_events(file_path, app_id)` decodes one file as UTF-8 and parses its
  lines.
- `read_application_events(base_path, app_id)` merges the events of all of
  an application's files and sorts them by timestamp. Files that fail to
  read are logged and skipped. It raises when the application has no event
  files at all.
- `scan_all_events(base_path)` does the same across every application and
  skips applications that fail.
- `health_check()` lists `/`. It returns `True` on success and raises
  otherwise.
- `get_file_info(file_path)` returns an `HdfsFileInfo` with the file's size,
  modification time and whether it is a directory.

Client failures, timeouts and invalid UTF-8 are raised as `HdfsError`.

## Tracking processed files

`sparkhistory.metadata_store.MetadataStore` keeps one `FileMetadata`
record per log file, keyed by path. It saves the records as JSON in
`file_metadata.json` inside the directory you give it, writing the file
again after every update or removal. If an existing file cannot be read or
parsed when the store is created, the error is logged and the store starts
empty.

`should_reload_file(path, size)` returns `True` in two cases: the file has
never been recorded, or its size has grown beyond the recorded size.

```python
from pathlib import Path
from sparkhistory.hdfs_reader import FileMetadata
from sparkhistory.metadata_store import MetadataStore

store = MetadataStore(Path("./data"))
if store.should_reload_file(path, size):
    ...
    store.update_metadata(FileMetadata(path=path, last_processed=now_ms,
                                       file_size=size, last_index=None,
                                       is_complete=not path.endswith(".inprogress")))
print(store.get_stats())
```

The store has four other methods:

- `get_metadata(path)` returns a copy of one record, or `None`.
- `get_all_tracked_files()` returns the paths of all recorded files.
- `remove_metadata(path)` forgets a file.
- `get_stats()` returns a `MetadataStats` with total, complete and
  incomplete counts.

`FileMetadata.to_dict()` and `FileMetadata.from_dict(data)` convert a
record to and from a plain mapping. `from_dict` raises `ValueError` on
missing or mistyped fields.

## API models

`sparkhistory.models` holds the data shapes of a history API:

- `ApplicationInfo`, `ApplicationAttemptInfo` and `ApplicationStatus`
- `JobData` and `JobStatus`
- `ExecutorSummary`, `MemoryMetrics` and `ResourceInformation`
- `RddStorageInfo` and `RddDataDistribution`
- `ApplicationEnvironmentInfo` and `RuntimeInfo`
- `VersionInfo`

`ApplicationAttemptInfo.create(...)` derives the duration and the epoch
millisecond fields from the times you pass in. For an attempt that has not
completed, the duration is measured up to the current time.

`to_camel_dict(obj)` turns any model into a JSON-ready dictionary with
camelCase keys. In that dictionary, enums become their values and datetimes
become ISO 8601 strings in UTC ending in `Z`. It raises `TypeError` for
anything that is not a model instance.

## What this package does not do

- It has no command-line program and no HTTP server. The models describe
  API responses, but nothing here serves them.
- It ships no concrete HDFS client. You provide one that implements
  `HdfsClient`.
- It does not store events in a database and does not run background scans.
  Event parsing and file tracking are offered as pieces for you to combine.

## Running the tests

```
pytest
```