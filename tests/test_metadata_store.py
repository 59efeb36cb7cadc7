import json

from sparkhistory.hdfs_reader import FileMetadata
from sparkhistory.metadata_store import MetadataStats, MetadataStore

PATH_A = "/hdfs/spark-events/application_1_0001/eventLog"
PATH_B = "/hdfs/spark-events/application_1_0002/events_1.inprogress"


def record(path, size, complete):
    return FileMetadata(
        path=path,
        last_processed=1700488800000,
        file_size=size,
        last_index=None,
        is_complete=complete,
    )


def test_new_store_is_empty(tmp_path):
    store = MetadataStore(tmp_path)
    assert store.get_all_tracked_files() == []
    assert store.get_metadata(PATH_A) is None
    assert store.metadata_file == tmp_path / "file_metadata.json"


def test_unknown_file_should_reload(tmp_path):
    store = MetadataStore(tmp_path)
    assert store.should_reload_file(PATH_A, 0) is True


def test_reload_only_when_grown(tmp_path):
    store = MetadataStore(tmp_path)
    store.update_metadata(record(PATH_A, 100, True))
    assert store.should_reload_file(PATH_A, 100) is False
    assert store.should_reload_file(PATH_A, 50) is False
    assert store.should_reload_file(PATH_A, 101) is True


def test_update_persists_and_reloads(tmp_path):
    store = MetadataStore(tmp_path)
    store.update_metadata(record(PATH_A, 100, True))
    store.update_metadata(record(PATH_B, 7, False))
    reopened = MetadataStore(tmp_path)
    assert sorted(reopened.get_all_tracked_files()) == sorted([PATH_A, PATH_B])
    assert reopened.get_metadata(PATH_A) == record(PATH_A, 100, True)
    on_disk = json.loads((tmp_path / "file_metadata.json").read_text())
    assert on_disk[PATH_B]["file_size"] == 7


def test_update_replaces_existing(tmp_path):
    store = MetadataStore(tmp_path)
    store.update_metadata(record(PATH_A, 100, False))
    store.update_metadata(record(PATH_A, 200, True))
    assert store.get_all_tracked_files() == [PATH_A]
    assert store.get_metadata(PATH_A).file_size == 200


def test_get_metadata_returns_copy(tmp_path):
    store = MetadataStore(tmp_path)
    store.update_metadata(record(PATH_A, 100, True))
    copy = store.get_metadata(PATH_A)
    copy.file_size = 999
    assert store.get_metadata(PATH_A).file_size == 100


def test_remove_metadata(tmp_path):
    store = MetadataStore(tmp_path)
    store.update_metadata(record(PATH_A, 100, True))
    store.update_metadata(record(PATH_B, 7, False))
    store.remove_metadata(PATH_A)
    store.remove_metadata("/not/tracked")
    assert store.get_all_tracked_files() == [PATH_B]
    assert MetadataStore(tmp_path).get_all_tracked_files() == [PATH_B]


def test_stats(tmp_path):
    store = MetadataStore(tmp_path)
    store.update_metadata(record(PATH_A, 100, True))
    store.update_metadata(record(PATH_B, 7, False))
    assert store.get_stats() == MetadataStats(total_files=2, complete_files=1, incomplete_files=1)


def test_corrupt_file_is_ignored(tmp_path):
    (tmp_path / "file_metadata.json").write_text("{not json")
    store = MetadataStore(tmp_path)
    assert store.get_all_tracked_files() == []
    assert store.get_stats().total_files == 0


def test_save_creates_missing_directory(tmp_path):
    target = tmp_path / "nested" / "meta"
    store = MetadataStore(target)
    store.update_metadata(record(PATH_A, 1, True))
    assert (target / "file_metadata.json").exists()
    assert MetadataStore(target).get_metadata(PATH_A) == record(PATH_A, 1, True)