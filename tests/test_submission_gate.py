import threading
import time

import pytest

from media_gate.errors import SubmissionNotAllowed
from media_gate.orchestration.submission_gate import (
    AddFiles,
    GateState,
    RemoveFile,
    SubmissionGate,
)
from media_gate.types import (
    GpsPoint,
    MediaFile,
    MediaKind,
    NormalizedMetadata,
    ProjectMode,
    Resolution,
    SubmitterIdentity,
)

GOOD = NormalizedMetadata(
    kind=MediaKind.IMAGE,
    gps=GpsPoint(1.0, 2.0),
    timestamp="2024-01-01T00:00:00.000Z",
    resolution=Resolution(1600, 1200),
    orientation_label="landscape",
)
NO_GPS = NormalizedMetadata(
    kind=MediaKind.IMAGE,
    timestamp="2024-01-01T00:00:00.000Z",
    resolution=Resolution(1600, 1200),
    orientation_label="landscape",
)

IDENTITY = SubmitterIdentity(user_name="  Ada  ", user_email="ada@example.com", user_id="1234")


def _file(name, size=100, modified=1.0):
    return MediaFile(name=name, type="image/jpeg", size=size, last_modified=modified, data=b"x" * size)


def _extractor(media_file):
    return NO_GPS if media_file.name.startswith("nogps") else GOOD


@pytest.fixture
def gate(project_factory):
    return SubmissionGate(project_factory(required_files=2, max_files=3), extractor=_extractor)


def test_new_gate_is_empty(gate):
    assert gate.state == GateState.EMPTY
    assert gate.pending == []


def test_add_files_evaluates_and_queues(gate):
    outcome = gate.handle(AddFiles([_file("a.jpg"), _file("nogps.jpg")]))

    assert [p.raw_file.name for p in outcome.accepted] == ["a.jpg", "nogps.jpg"]
    assert outcome.accepted[0].hard_pass is True
    assert outcome.accepted[1].verdict.hard_failures == ["gps"]
    assert gate.state == GateState.ACCUMULATING
    assert [p.raw_file.name for p in gate.hard_passing()] == ["a.jpg"]


def test_reselecting_same_file_is_a_no_op(gate):
    gate.handle(AddFiles([_file("a.jpg")]))
    outcome = gate.handle(AddFiles([_file("a.jpg")]))

    assert outcome.accepted == []
    assert len(outcome.duplicates) == 1
    assert outcome.message is None
    assert len(gate.pending) == 1


def test_duplicates_within_one_batch_are_collapsed(gate):
    outcome = gate.handle(AddFiles([_file("a.jpg"), _file("a.jpg")]))
    assert len(outcome.accepted) == 1
    assert len(outcome.duplicates) == 1


def test_same_name_different_size_is_a_new_file(gate):
    gate.handle(AddFiles([_file("a.jpg", size=100)]))
    outcome = gate.handle(AddFiles([_file("a.jpg", size=200)]))
    assert len(outcome.accepted) == 1


def test_batch_is_truncated_to_remaining_room(project_factory):
    gate = SubmissionGate(project_factory(required_files=1, max_files=5), extractor=_extractor)
    gate.handle(AddFiles([_file(f"old{i}.jpg") for i in range(3)]))

    outcome = gate.handle(AddFiles([_file(f"new{i}.jpg") for i in range(4)]))

    assert [p.raw_file.name for p in outcome.accepted] == ["new0.jpg", "new1.jpg"]
    assert [f.name for f in outcome.overflow] == ["new2.jpg", "new3.jpg"]
    assert "Only 2 more file(s) allowed (maximum 5)" in outcome.message
    assert len(gate.pending) == 5
    assert gate.state == GateState.AT_CAPACITY


def test_full_gate_rejects_new_files(gate):
    gate.handle(AddFiles([_file("a.jpg"), _file("b.jpg"), _file("c.jpg")]))
    outcome = gate.handle(AddFiles([_file("d.jpg")]))

    assert outcome.accepted == []
    assert [f.name for f in outcome.overflow] == ["d.jpg"]
    assert outcome.message == "Maximum 3 files allowed. Remove a file before adding more."
    assert len(gate.pending) == 3


def test_remove_file_frees_room(gate):
    gate.handle(AddFiles([_file("a.jpg"), _file("b.jpg"), _file("c.jpg")]))
    key = gate.pending[1].identity_key

    removal = gate.handle(RemoveFile(key))

    assert removal.removed.raw_file.name == "b.jpg"
    assert [p.raw_file.name for p in gate.pending] == ["a.jpg", "c.jpg"]
    assert gate.handle(RemoveFile("missing|0|0")).removed is None
    assert len(gate.handle(AddFiles([_file("d.jpg")])).accepted) == 1


def test_unknown_command_is_rejected(gate):
    with pytest.raises(TypeError):
        gate.handle("add")


def test_results_keep_selection_order_with_concurrent_processing(project_factory):
    def slow_first(media_file):
        if media_file.name == "slow.jpg":
            time.sleep(0.05)
        return GOOD

    gate = SubmissionGate(project_factory(required_files=1, max_files=4), extractor=slow_first, max_workers=4)
    names = ["slow.jpg", "b.jpg", "c.jpg", "d.jpg"]
    gate.handle(AddFiles([_file(n) for n in names]))

    assert [p.raw_file.name for p in gate.pending] == names


def test_concurrent_batches_never_exceed_capacity(project_factory):
    gate = SubmissionGate(project_factory(required_files=1, max_files=3), extractor=_extractor)
    batches = [[_file(f"t{t}_{i}.jpg") for i in range(2)] for t in range(5)]

    threads = [threading.Thread(target=gate.handle, args=(AddFiles(b),)) for b in batches]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(gate.pending) == 3
    assert len({p.identity_key for p in gate.pending}) == 3


def test_eligibility_requires_enough_hard_passing_files(gate):
    gate.handle(AddFiles([_file("a.jpg"), _file("nogps.jpg")]))

    report = gate.check_eligibility(IDENTITY)

    assert report.allowed is False
    assert report.hard_passing == 1
    assert "1 of 2 required file(s) pass all hard rules" in report.reasons
    with pytest.raises(SubmissionNotAllowed):
        gate.build_payload(IDENTITY)


def test_eligibility_checks_identity(gate):
    gate.handle(AddFiles([_file("a.jpg"), _file("b.jpg")]))

    report = gate.check_eligibility(SubmitterIdentity(user_name=" ", user_email="ada@", user_id="12a"))

    assert report.reasons == ["Name is required", "Invalid email format", "User ID must contain only numbers"]
    assert gate.can_submit(IDENTITY)


def test_payload_contains_only_hard_passing_files(gate):
    gate.handle(AddFiles([_file("a.jpg"), _file("nogps.jpg"), _file("b.jpg")]))

    payload = gate.build_payload(IDENTITY)
    body = payload.to_dict()

    assert [f["filename"] for f in body["files"]] == ["a.jpg", "b.jpg"]
    assert body["userName"] == "Ada"
    assert body["files"][0]["metadata"]["kind"] == "image"
    assert body["files"][0]["validation"]["hardPass"] is True


def test_self_check_project_never_submits(project_factory):
    gate = SubmissionGate(project_factory(mode=ProjectMode.SELF_CHECK), extractor=_extractor)
    gate.handle(AddFiles([_file("a.jpg"), _file("b.jpg")]))

    report = gate.check_eligibility(IDENTITY)

    assert report.allowed is False
    assert report.hard_passing == 2
    assert any("self-check" in reason for reason in report.reasons)


def test_reconfigure_reevaluates_queue(gate, project_factory):
    gate.handle(AddFiles([_file("nogps.jpg")]))
    assert gate.hard_passing() == []

    relaxed = project_factory(metadata_requirements={"gps": {"required": True, "failureMode": "soft"}})
    gate.reconfigure(relaxed)

    assert len(gate.hard_passing()) == 1
    assert gate.pending[0].verdict.soft_failures == ["gps"]


def test_submit_posts_through_client(gate):
    gate.handle(AddFiles([_file("a.jpg"), _file("b.jpg")]))

    class FakeClient:
        def __init__(self):
            self.calls = []

        def submit_verification(self, project_id, payload):
            self.calls.append((project_id, payload))
            return {"success": True, "submissionId": "abc", "emailSent": False}

    client = FakeClient()
    response = gate.submit(IDENTITY, client)

    assert response["submissionId"] == "abc"
    assert client.calls[0][0] == "proj-1"
    assert len(client.calls[0][1].files) == 2
