"""
Tests for execution state persistence.
"""

import json
from pathlib import Path

import pytest
import yaml

from coginstall.state_store import (
    ensure_defaults,
    is_step_completed,
    load_state,
    mark_step_completed,
    record_decision,
    save_state,
)


class TestStateFile:
    def test_missing_file_is_empty(self, tmp_path: Path):
        assert load_state(str(tmp_path / "none.json")) == {}

    def test_json_save_and_load(self, tmp_path: Path):
        path = tmp_path / "nested" / "state.json"
        state = ensure_defaults({})
        mark_step_completed(state, "10_check_prerequisites")

        save_state(str(path), state)

        assert json.loads(path.read_text())["execution"]["completed_steps"] == ["10_check_prerequisites"]
        assert load_state(str(path)) == state

    def test_yaml_by_extension(self, tmp_path: Path):
        path = tmp_path / "state.yaml"
        save_state(str(path), {"execution": {"completed_steps": ["20_update_system"]}})

        assert yaml.safe_load(path.read_text())["execution"]["completed_steps"] == ["20_update_system"]
        assert is_step_completed(load_state(str(path)), "20_update_system")

    def test_non_mapping_rejected(self, tmp_path: Path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            load_state(str(path))


class TestStateHelpers:
    def test_defaults_do_not_override(self):
        state = ensure_defaults({"execution": {"completed_steps": ["10_a"]}})
        assert state["execution"]["completed_steps"] == ["10_a"]
        assert state["execution"]["errors"] == []
        assert state["version"] == 1

    def test_mark_is_idempotent(self):
        state = {}
        mark_step_completed(state, "10_a")
        mark_step_completed(state, "10_a")
        assert state["execution"]["completed_steps"] == ["10_a"]

    def test_record_decision(self):
        state = {}
        record_decision(state, "image", "nvcr.io/nvidia/pytorch:23.05-py3")
        assert state["execution"]["decisions"] == {"image": "nvcr.io/nvidia/pytorch:23.05-py3"}
