import json

import pytest

from media_gate.config.settings import GateSettings
from media_gate.errors import (
    AdmissionError,
    MetadataTooLarge,
    ProjectNotFound,
    SelfCheckProject,
    StorageFailure,
)
from media_gate.orchestration.admission import admit_submission
from media_gate.storage.projects import InMemoryProjectStore
from media_gate.storage.submissions import InMemorySubmissionStore
from media_gate.types import ProjectMode
from media_gate.validators.submission_validator import metadata_byte_size, validate_submission_payload


def _entry(name="a.jpg", media_type="image/jpeg", metadata=None):
    return {
        "filename": name,
        "type": media_type,
        "size": 1024,
        "metadata": metadata if metadata is not None else {"kind": "image", "gps": {"lat": 1.0, "lng": 2.0}},
        "validation": {"hardPass": True, "hardFailures": [], "softFailures": [], "perRule": {}},
    }


def _body(count=2, **overrides):
    body = {
        "userName": "Ada",
        "userEmail": "ada@example.com",
        "userId": "1234",
        "files": [_entry(f"f{i}.jpg") for i in range(count)],
    }
    body.update(overrides)
    return body


class RecordingNotifier:
    configured = True

    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.sent = []

    def send_submission_summary(self, recipient, record):
        self.sent.append((recipient, record))
        if self.error:
            raise self.error
        return self.result


class BrokenStore:
    def save(self, record):
        raise IOError("disk full")


@pytest.fixture
def stores(project_factory):
    projects = InMemoryProjectStore([
        project_factory("audit", required_files=2, max_files=3, email_recipient="ops@example.com"),
        project_factory("selfcheck", mode=ProjectMode.SELF_CHECK),
        project_factory("retired", active=False),
    ])
    return projects, InMemorySubmissionStore()


# -- payload validation -----------------------------------------------------

def test_metadata_byte_size_counts_utf8_of_compact_json():
    assert metadata_byte_size({"a": 1}) == len('{"a":1}')
    assert metadata_byte_size({"n": "é"}) == len('{"n":"é"}'.encode("utf-8"))


def test_metadata_byte_size_writes_integral_floats_without_fraction():
    metadata = {"gps": {"lat": 51.0, "lng": -0.5}, "sizes": [1.0, 2.5]}
    assert metadata_byte_size(metadata) == len('{"gps":{"lat":51,"lng":-0.5},"sizes":[1,2.5]}')


def test_too_few_files_names_the_required_count(project_factory):
    config = project_factory(required_files=3, max_files=5).config
    with pytest.raises(AdmissionError) as excinfo:
        validate_submission_payload(_body(count=2), config, max_metadata_bytes=65536)
    assert excinfo.value.message == "At least 3 files are required"
    assert excinfo.value.status_code == 400


def test_too_many_files(project_factory):
    config = project_factory(required_files=1, max_files=2).config
    with pytest.raises(AdmissionError, match="Maximum 2 files allowed"):
        validate_submission_payload(_body(count=3), config, max_metadata_bytes=65536)


@pytest.mark.parametrize("overrides,message", [
    ({"userName": ""}, "Name, email, and user ID are required"),
    ({"userEmail": "not-an-email"}, "Invalid email format"),
    ({"userId": "12-34"}, "User ID must contain only numbers"),
    ({"files": []}, "At least one file is required"),
])
def test_identity_checks(project_factory, overrides, message):
    with pytest.raises(AdmissionError) as excinfo:
        validate_submission_payload(_body(**overrides), project_factory().config, 65536)
    assert excinfo.value.message == message


def test_disallowed_type_is_rejected(project_factory):
    body = _body()
    body["files"][1] = _entry("clip.mp4", media_type="video/mp4")
    with pytest.raises(AdmissionError) as excinfo:
        validate_submission_payload(body, project_factory().config, 65536)
    assert excinfo.value.message == "File type not allowed: video/mp4"
    assert excinfo.value.field == "files[1].type"


@pytest.mark.parametrize("size", [-1, "10", True, float("inf")])
def test_bad_sizes_are_rejected(project_factory, size):
    body = _body()
    body["files"][0]["size"] = size
    with pytest.raises(AdmissionError, match="non-negative"):
        validate_submission_payload(body, project_factory().config, 65536)


def test_oversized_metadata_reports_exact_byte_count(project_factory):
    metadata = {"kind": "image", "debug": "x" * 70000}
    expected = len(json.dumps(metadata, separators=(",", ":")).encode("utf-8"))
    body = _body()
    body["files"][0] = _entry(metadata=metadata)

    with pytest.raises(MetadataTooLarge) as excinfo:
        validate_submission_payload(body, project_factory().config, 64 * 1024)

    assert excinfo.value.status_code == 413
    assert excinfo.value.byte_count == expected
    assert f"({expected} bytes)" in excinfo.value.message
    assert excinfo.value.field == "files[0].metadata"


def test_non_object_body_is_rejected(project_factory):
    with pytest.raises(AdmissionError, match="Invalid JSON body"):
        validate_submission_payload(None, project_factory().config, 65536)


# -- admission flow ---------------------------------------------------------

def test_admits_and_stores_submission(stores):
    projects, submissions = stores
    notifier = RecordingNotifier()

    result = admit_submission("audit", _body(), projects, submissions, GateSettings(), notifier)

    assert result.success is True
    assert result.email_sent is True
    stored = submissions.list(project_id="audit")
    assert len(stored) == 1
    assert stored[0]["id"] == result.submission_id
    assert stored[0]["projectName"] == "Site Survey"
    assert stored[0]["submittedAt"].endswith("Z")
    assert notifier.sent[0][0] == "ops@example.com"


def test_unknown_and_inactive_projects_are_not_found(stores):
    projects, submissions = stores
    for project_id in ("missing", "retired"):
        with pytest.raises(ProjectNotFound) as excinfo:
            admit_submission(project_id, _body(), projects, submissions, GateSettings())
        assert excinfo.value.status_code == 404


def test_self_check_project_is_forbidden_and_nothing_is_stored(stores):
    projects, submissions = stores
    with pytest.raises(SelfCheckProject) as excinfo:
        admit_submission("selfcheck", _body(), projects, submissions, GateSettings())
    assert excinfo.value.status_code == 403
    assert submissions.count() == 0


def test_project_checks_run_before_body_checks(stores):
    projects, submissions = stores
    with pytest.raises(SelfCheckProject):
        admit_submission("selfcheck", None, projects, submissions, GateSettings())


def test_storage_failure_is_a_server_error(stores):
    projects, _ = stores
    with pytest.raises(StorageFailure) as excinfo:
        admit_submission("audit", _body(), projects, BrokenStore(), GateSettings())
    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "Failed to store submission"


def test_notification_failure_keeps_submission(stores):
    projects, submissions = stores
    notifier = RecordingNotifier(error=RuntimeError("relay down"))

    result = admit_submission("audit", _body(), projects, submissions, GateSettings(), notifier)

    assert result.success is True
    assert result.email_sent is False
    assert submissions.count(project_id="audit") == 1


def test_no_notification_without_recipient(project_factory):
    projects = InMemoryProjectStore([project_factory("quiet")])
    notifier = RecordingNotifier()

    result = admit_submission("quiet", _body(), projects, InMemorySubmissionStore(), GateSettings(), notifier)

    assert result.email_sent is False
    assert notifier.sent == []
