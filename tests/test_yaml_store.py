import os
import stat
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from routedoc.domain.models import EndpointRecord, Metadata, Parameter, Response
from routedoc.errors import IntermediateFileError, PersistenceError
from routedoc.store import yaml_store
from routedoc.store.yaml_store import EndpointYAMLStore, group_endpoints, load_endpoints, persist_endpoints


def rec(uri, group=None, method="GET", **kw) -> EndpointRecord:
    return EndpointRecord(
        http_methods=[method],
        uri=uri,
        metadata=Metadata(group_name=group, title=kw.pop("title", None)),
        **kw,
    )


def test_group_endpoints_first_seen_order():
    records = [rec("/u1", "Users"), rec("/o1", "Orders"), rec("/u2", "Users"), rec("/x")]
    groups = group_endpoints(records)

    assert [g.name for g in groups] == ["Users", "Orders", "Endpoints"]
    assert [e.uri for e in groups[0].endpoints] == ["/u1", "/u2"]


def test_persist_writes_one_numbered_file_per_group(tmp_path: Path):
    store = EndpointYAMLStore(tmp_path / ".endpoints")
    records = [rec("/u1", "Users"), rec("/o1", "Orders"), rec("/u2", "Users")]

    written = store.persist(records)

    assert [p.name for p in written] == ["0.yaml", "1.yaml"]
    first = yaml.safe_load(written[0].read_text(encoding="utf-8"))
    assert first["name"] == "Users"
    assert [e["uri"] for e in first["endpoints"]] == ["/u1", "/u2"]


def test_round_trip_is_lossless(tmp_path: Path):
    full = EndpointRecord(
        http_methods=["POST"],
        uri="/users/{id}",
        metadata=Metadata(
            group_name="Users",
            group_description="All about users",
            title="Update a user",
            description="Multi-line\ndescription: with colons",
            authenticated=True,
        ),
        headers={"Content-Type": "application/json"},
        url_parameters={"id": Parameter(name="id", type="integer", required=True, example=4)},
        query_parameters={},
        body_parameters={"tags": Parameter(name="tags", type="array", example=["a", "b"])},
        responses=[Response(status=200, content='{"ok": true}'), Response(status=404)],
        response_fields={},
    )
    bare = rec("/ping", "Ops")
    records = [full, bare, rec("/u2", "Users", title="Second")]

    loaded = load_endpoints(persist_endpoints(records, tmp_path / "d")[0].parent)

    assert loaded == [full, records[2], bare]
    assert loaded[0].response_fields == {}
    assert loaded[1].response_fields is None
    assert loaded[0].query_parameters == {}


def test_load_missing_or_empty_directory(tmp_path: Path):
    assert EndpointYAMLStore(tmp_path / "nope").load() == []
    (tmp_path / "empty").mkdir()
    assert EndpointYAMLStore(tmp_path / "empty").load() == []


def test_load_orders_files_numerically(tmp_path: Path):
    store = EndpointYAMLStore(tmp_path)
    records = [rec(f"/g{i}", f"Group {i}") for i in range(12)]
    store.persist(records)

    assert [e.uri for e in store.load()] == [f"/g{i}" for i in range(12)]
    assert [p.name for p in store.group_files()][:3] == ["0.yaml", "1.yaml", "2.yaml"]


def test_stale_group_files_are_removed(tmp_path: Path):
    store = EndpointYAMLStore(tmp_path)
    store.persist([rec(f"/g{i}", f"G{i}") for i in range(5)])
    (tmp_path / "notes.txt").write_text("keep me", encoding="utf-8")

    store.persist([rec("/a", "A"), rec("/b", "B"), rec("/c", "C")])

    assert sorted(p.name for p in store.group_files()) == ["0.yaml", "1.yaml", "2.yaml"]
    assert [e.uri for e in store.load()] == ["/a", "/b", "/c"]
    assert (tmp_path / "notes.txt").exists()


def test_persist_with_no_records_creates_empty_directory(tmp_path: Path):
    store = EndpointYAMLStore(tmp_path / "out")
    assert store.persist([]) == []
    assert store.directory.is_dir()
    assert store.load() == []


def test_directory_creation_failure_is_fatal(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a dir", encoding="utf-8")

    with pytest.raises(PersistenceError) as exc_info:
        EndpointYAMLStore(blocker).persist([rec("/a", "A")])
    assert exc_info.value.path == blocker


def test_no_temp_files_left_behind(tmp_path: Path):
    EndpointYAMLStore(tmp_path).persist([rec("/a", "A"), rec("/b", "B")])
    assert sorted(p.name for p in tmp_path.iterdir()) == ["0.yaml", "1.yaml"]


def test_hand_edited_files_are_picked_up(tmp_path: Path):
    store = EndpointYAMLStore(tmp_path)
    store.persist([rec("/a", "A", title="Old title")])

    path = tmp_path / "0.yaml"
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    data["endpoints"][0]["metadata"]["title"] = "New title"
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")

    assert store.load()[0].metadata.title == "New title"


def test_bare_list_file_is_accepted(tmp_path: Path):
    (tmp_path / "0.yaml").write_text(
        "- http_methods: [GET]\n  uri: /a\n  metadata:\n    group_name: A\n",
        encoding="utf-8",
    )
    groups = EndpointYAMLStore(tmp_path).load_groups()
    assert groups[0].name == "A"
    assert groups[0].endpoints[0].uri == "/a"


def test_malformed_files_raise(tmp_path: Path):
    (tmp_path / "0.yaml").write_text("endpoints: [ {uri: ", encoding="utf-8")
    with pytest.raises(IntermediateFileError):
        EndpointYAMLStore(tmp_path).load()

    (tmp_path / "0.yaml").write_text("endpoints:\n  - uri: /missing-methods\n", encoding="utf-8")
    with pytest.raises(IntermediateFileError):
        EndpointYAMLStore(tmp_path).load()


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_group_files_follow_umask(tmp_path: Path):
    old = os.umask(0o022)
    try:
        written = EndpointYAMLStore(tmp_path).persist([rec("/a", "A")])
    finally:
        os.umask(old)

    assert stat.S_IMODE(written[0].stat().st_mode) == 0o644


def test_failed_group_write_is_fatal_and_leaves_no_partial_files(tmp_path: Path, monkeypatch):
    store = EndpointYAMLStore(tmp_path)
    store.persist([rec("/old", "Old")])

    def disk_full(src, dst):
        raise OSError("No space left on device")

    monkeypatch.setattr(yaml_store.os, "replace", disk_full)

    with pytest.raises(PersistenceError) as exc_info:
        store.persist([rec("/a", "A"), rec("/b", "B")])

    assert exc_info.value.path == tmp_path / "0.yaml"
    assert list(tmp_path.iterdir()) == []


def test_example_values_are_stored_as_json_native(tmp_path: Path):
    param = Parameter(name="point", example=(1, 2))
    assert param.example == [1, 2]

    original = EndpointRecord(
        http_methods=["GET"],
        uri="/p",
        query_parameters={"point": param},
        response_fields={"coords": (3, 4)},
    )
    EndpointYAMLStore(tmp_path).persist([original])
    assert EndpointYAMLStore(tmp_path).load() == [original]


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), object()])
def test_non_json_examples_are_rejected(bad):
    with pytest.raises(ValidationError):
        Parameter(name="x", example=bad)


def test_records_are_immutable():
    record = rec("/a", "A", title="Title")
    with pytest.raises(ValidationError):
        record.metadata.title = "Changed"
    with pytest.raises(ValidationError):
        record.uri = "/b"
