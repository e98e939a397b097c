import json

import pytest

from media_gate.errors import ProjectConfigError
from media_gate.storage.projects import JsonFileProjectStore, project_from_dict
from media_gate.types import ProjectMode
from media_gate.validators.project_validator import validate_project_config


def _definition(**config_overrides):
    config = {
        "requiredFiles": 2,
        "maxFiles": 4,
        "allowedFileTypes": ["image/jpeg", "video/mp4"],
        "metadataRequirements": {
            "gps": {"required": True, "failureMode": "hard"},
            "orientation": {"required": False, "value": "portrait"},
        },
        "mode": "audit",
        "emailRecipient": "ops@example.com",
    }
    config.update(config_overrides)
    return {"id": "site-a", "name": " Site A ", "active": True, "config": config}


def test_valid_config_has_no_errors():
    assert validate_project_config(_definition()["config"]) == []


@pytest.mark.parametrize("overrides,expected", [
    ({"requiredFiles": 0}, "config.requiredFiles must be an integer >= 1"),
    ({"maxFiles": 1}, "config.maxFiles must be an integer >= requiredFiles"),
    ({"allowedFileTypes": "image/jpeg"}, "config.allowedFileTypes must be an array of strings"),
    ({"mode": "strict"}, "config.mode must be audit|self_check if provided"),
    ({"metadataRequirements": {"gps": {"required": "yes"}}}, "config.metadataRequirements.gps.required must be boolean"),
    ({"metadataRequirements": {"gps": {"required": True, "failureMode": "warn"}}},
     "config.metadataRequirements.gps.failureMode must be hard|soft"),
])
def test_invalid_configs(overrides, expected):
    assert expected in validate_project_config(_definition(**overrides)["config"])


def test_project_from_dict():
    project = project_from_dict(_definition(mode="self_check"))

    assert project.id == "site-a"
    assert project.name == "Site A"
    assert project.config.required_files == 2
    assert project.config.mode == ProjectMode.SELF_CHECK
    assert project.config.email_recipient == "ops@example.com"
    assert "emailRecipient" not in project.public_view()


def test_project_from_dict_rejects_invalid():
    with pytest.raises(ProjectConfigError) as excinfo:
        project_from_dict({"name": "", "config": {}})
    assert "id is required" in excinfo.value.errors
    assert "name is required" in excinfo.value.errors


def test_json_file_store_skips_broken_projects(tmp_path):
    broken = _definition(requiredFiles=0)
    broken["id"] = "broken"
    path = tmp_path / "projects.json"
    path.write_text(json.dumps({"projects": [_definition(), broken]}), encoding="utf-8")

    store = JsonFileProjectStore(path)

    assert [p.id for p in store.list()] == ["site-a"]
    assert store.get("broken") is None


def test_json_file_store_missing_file(tmp_path):
    store = JsonFileProjectStore(tmp_path / "absent.json")
    assert store.list() == []


@pytest.mark.parametrize("content", [{"projects": 7}, {"projects": "site-a"}, "site-a"])
def test_json_file_store_ignores_non_list_projects(tmp_path, content):
    path = tmp_path / "projects.json"
    path.write_text(json.dumps(content), encoding="utf-8")

    store = JsonFileProjectStore(path)

    assert store.list() == []
