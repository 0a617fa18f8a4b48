# === NAVMAP v1 ===
# {
#   "module": "tests.copy_planning.test_expanders",
#   "purpose": "Pytest coverage for the per-shape job expanders",
#   "sections": [
#     {"id": "type-a", "name": "Type A", "anchor": "TYA", "kind": "tests"},
#     {"id": "type-b", "name": "Type B", "anchor": "TYB", "kind": "tests"},
#     {"id": "type-c", "name": "Type C", "anchor": "TYC", "kind": "tests"},
#     {"id": "type-d", "name": "Type D", "anchor": "TYD", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Job expansion for every copy shape, including the error job paths."""

from BucketCopy.CopyPlanning.cancellation import CancellationToken
from BucketCopy.CopyPlanning.errors import (
    InvalidSourceError,
    ListingError,
    ObjectMissingError,
    SourceIsDirectoryError,
    SourceNotFoundError,
)
from BucketCopy.CopyPlanning.expanders import (
    iter_type_c,
    iter_type_d,
    make_job_type_b,
    prepare_type_a,
    prepare_type_b,
)
from BucketCopy.CopyPlanning.models import Content, ContentType, Location


def _targets(jobs):
    return [job.target_url if job.ok else None for job in jobs]


# --- Type A ---


def test_type_a_pairs_source_with_target(backend):
    backend.add_file("play/bucket/a.txt", size=5)

    job = prepare_type_a(CancellationToken(), backend, "play/bucket/a.txt", "", "out/b.txt")

    assert job.ok
    assert job.source_alias == "play"
    assert job.source_content.size == 5
    assert job.target_alias == ""
    assert job.target_url == "out/b.txt"


def test_type_a_directory_source_is_invalid_source(backend):
    backend.add_dir("play/bucket/dir")

    job = prepare_type_a(CancellationToken(), backend, "play/bucket/dir", "", "out")

    assert isinstance(job.error, InvalidSourceError)
    assert job.error.entries[-1].operation == "prepare"
    assert job.source_content is None


def test_type_a_missing_source_is_error_job(backend):
    job = prepare_type_a(CancellationToken(), backend, "play/bucket/gone", "", "out")

    assert isinstance(job.error, SourceNotFoundError)
    assert job.error.locations == ("play/bucket/gone",)


def test_type_a_stat_failure_keeps_backend_message(backend):
    backend.add_file("play/bucket/a.txt")
    backend.fail_stat("play/bucket/a.txt", SourceNotFoundError("Access denied"))

    job = prepare_type_a(CancellationToken(), backend, "play/bucket/a.txt", "", "out")

    assert job.error.message == "Access denied"
    assert [entry.operation for entry in job.error.entries] == ["stat", "prepare"]


# --- Type B ---


def test_type_b_appends_base_name(backend):
    backend.add_file("dir/file.txt")

    job = prepare_type_b(CancellationToken(), backend, "dir/file.txt", "", "play/bucket")

    assert job.target_alias == "play"
    assert job.target_content.path == "bucket/file.txt"
    assert job.target_url == "play/bucket/file.txt"


def test_type_b_directory_source_has_dedicated_error(backend):
    backend.add_dir("dir")

    job = prepare_type_b(CancellationToken(), backend, "dir", "", "bucket")

    assert isinstance(job.error, SourceIsDirectoryError)
    assert "is a folder" in str(job.error)


def test_type_b_other_non_regular_source_is_invalid_source(backend):
    backend.add_entry("link", ContentType.SYMLINK)

    job = prepare_type_b(CancellationToken(), backend, "link", "", "bucket")

    assert isinstance(job.error, InvalidSourceError)
    assert not isinstance(job.error, SourceIsDirectoryError)


def test_type_b_uses_source_separator_for_base_name():
    source = Content(location=Location(alias="", path="C:\\data\\f.txt", separator="\\"))

    job = make_job_type_b("", source, "play", "bucket/out")

    assert job.target_content.path == "bucket/out/f.txt"


# --- Type C ---


def test_type_c_rewrites_paths_in_listing_order(backend):
    backend.add_file("play/bucket/dir1/a.txt")
    backend.add_file("play/bucket/dir1/sub/b.txt")

    jobs = list(
        iter_type_c(CancellationToken(), backend, "play/bucket/dir1", "play/bucket2/out")
    )

    assert _targets(jobs) == [
        "play/bucket2/out/dir1/a.txt",
        "play/bucket2/out/dir1/sub/b.txt",
    ]


def test_type_c_listing_error_is_non_fatal(backend):
    backend.add_file("play/bucket/dir1/a.txt")
    backend.add_file("play/bucket/dir1/b.txt")
    backend.fail_list_entry("play/bucket/dir1/a.txt", ListingError("access denied"))

    jobs = list(iter_type_c(CancellationToken(), backend, "play/bucket/dir1", "out"))

    assert len(jobs) == 2
    assert isinstance(jobs[0].error, ListingError)
    assert jobs[0].error.entries[-1].operation == "list"
    assert jobs[0].error.locations == ("play/bucket/dir1",)
    assert jobs[1].target_url == "out/dir1/b.txt"


def test_type_c_skips_non_regular_entries(backend):
    backend.add_file("src/a.txt")
    backend.add_entry("src/link", ContentType.SYMLINK)
    backend.add_dir("src/empty")

    jobs = list(iter_type_c(CancellationToken(), backend, "src", "out"))

    assert _targets(jobs) == ["out/src/a.txt"]


def test_type_c_client_failure_is_one_error_job(backend):
    backend.fail_client("play/bucket/dir")

    jobs = list(iter_type_c(CancellationToken(), backend, "play/bucket/dir", "out"))

    assert len(jobs) == 1
    assert jobs[0].error.entries[-1].operation == "new_client"


def test_type_c_missing_source_is_one_error_job(backend):
    jobs = list(iter_type_c(CancellationToken(), backend, "play/bucket/none", "out"))

    assert len(jobs) == 1
    assert isinstance(jobs[0].error, ObjectMissingError)


def test_type_c_stops_when_cancelled(backend):
    for index in range(10):
        backend.add_file(f"src/f{index:02d}.txt")
    token = CancellationToken()

    jobs = []
    for job in iter_type_c(token, backend, "src", "out"):
        jobs.append(job)
        if len(jobs) == 3:
            token.cancel()

    assert len(jobs) == 3


# --- Type D ---


def test_type_d_preserves_argument_order(backend):
    backend.add_file("f1.txt")
    backend.add_file("f2.txt")

    jobs = list(iter_type_d(CancellationToken(), backend, ["f2.txt", "f1.txt"], "bucket"))

    assert _targets(jobs) == ["bucket/f2.txt", "bucket/f1.txt"]


def test_type_d_failing_source_does_not_stop_siblings(backend):
    backend.add_file("f1.txt")
    backend.add_file("f2.txt")

    jobs = list(
        iter_type_d(CancellationToken(), backend, ["f1.txt", "missing.txt", "f2.txt"], "bucket")
    )

    assert _targets(jobs) == ["bucket/f1.txt", None, "bucket/f2.txt"]
    assert jobs[1].error.locations[0] == "missing.txt"


def _populate_many(backend):
    sources = []
    for source in range(4):
        for index in range(15):
            backend.add_file(f"play/src{source}/sub{index % 3}/f{index:02d}.txt")
        sources.append(f"play/src{source}")
    return sources


def test_type_d_fan_out_matches_sequential_order(backend):
    sources = _populate_many(backend)
    backend.fail_list_entry("play/src2/sub1/f04.txt", ListingError("denied"))

    sequential = list(iter_type_d(CancellationToken(), backend, sources, "play/out"))
    fanned_out = list(
        iter_type_d(
            CancellationToken(),
            backend,
            sources,
            "play/out",
            source_concurrency=3,
            poll_interval=0.01,
        )
    )

    assert len(sequential) == 60
    assert _targets(fanned_out) == _targets(sequential)


def test_type_d_fan_out_stops_workers_on_close(backend, live_pipeline_threads):
    sources = _populate_many(backend)
    token = CancellationToken()
    jobs = iter_type_d(
        token, backend, sources, "play/out", source_concurrency=4, poll_interval=0.01
    )

    first = next(jobs)
    token.cancel()
    jobs.close()

    assert first.ok
    assert not [name for name in live_pipeline_threads() if name.startswith("copy-plan-source")]
