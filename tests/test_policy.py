"""Tests for secaudit.policy module."""
from pathlib import Path

import pytest

from secaudit.io_utils import save_json
from secaudit.policy import (
    DEFAULT_POLICY,
    POLICY_ENV_VAR,
    WorkflowPolicy,
    load_policy,
    policy_from_dict,
)


class TestThresholds:
    def test_defaults(self) -> None:
        assert DEFAULT_POLICY.command_threshold == 0.75
        assert DEFAULT_POLICY.intent_threshold == 0.5
        assert DEFAULT_POLICY.min_section_length == 500
        assert DEFAULT_POLICY.min_extracted_chars == 1000

    def test_command_strict(self) -> None:
        assert DEFAULT_POLICY.threshold_for(is_command=True, strict=True) == 0.75

    def test_command_no_strict_uses_intent_threshold(self) -> None:
        assert DEFAULT_POLICY.threshold_for(is_command=True, strict=False) == 0.5

    def test_intent_ignores_strict(self) -> None:
        assert DEFAULT_POLICY.threshold_for(is_command=False, strict=True) == 0.5
        assert DEFAULT_POLICY.threshold_for(is_command=False, strict=False) == 0.5

    def test_skip_probabilities(self) -> None:
        assert DEFAULT_POLICY.skip_probability("validate") == 0.5
        assert DEFAULT_POLICY.skip_probability("locate_sections_when_vague") == 0.4
        assert DEFAULT_POLICY.skip_probability("generate") == 0.2


class TestValidation:
    def test_threshold_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="command_threshold"):
            WorkflowPolicy(command_threshold=1.5)

    def test_command_below_intent(self) -> None:
        with pytest.raises(ValueError, match="must be >="):
            WorkflowPolicy(command_threshold=0.4, intent_threshold=0.5)

    def test_unknown_skip_key(self) -> None:
        with pytest.raises(ValueError, match="Unknown skip probability"):
            WorkflowPolicy(skip_probabilities={"fetch": 0.1})

    def test_skip_probability_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="within"):
            WorkflowPolicy(skip_probabilities={"validate": -0.1})


class TestPolicyFromDict:
    def test_overlay(self) -> None:
        policy = policy_from_dict({"command_threshold": 0.8, "min_section_length": "300"})
        assert policy.command_threshold == 0.8
        assert policy.min_section_length == 300
        assert policy.intent_threshold == 0.5

    def test_skip_probabilities_merge(self) -> None:
        policy = policy_from_dict({"skip_probabilities": {"validate": 0.0}})
        assert policy.skip_probability("validate") == 0.0
        assert policy.skip_probability("generate") == 0.2

    def test_unknown_key(self) -> None:
        with pytest.raises(ValueError, match="Unknown policy key"):
            policy_from_dict({"threshold": 0.9})

    def test_skip_probabilities_must_be_object(self) -> None:
        with pytest.raises(ValueError, match="must be an object"):
            policy_from_dict({"skip_probabilities": [0.1]})

    def test_base_not_mutated(self) -> None:
        policy_from_dict({"skip_probabilities": {"validate": 1.0}})
        assert DEFAULT_POLICY.skip_probability("validate") == 0.5


class TestLoadPolicy:
    def test_defaults_without_path_or_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(POLICY_ENV_VAR, raising=False)
        assert load_policy() is DEFAULT_POLICY

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "policy.json"
        save_json({"intent_threshold": 0.3}, path)
        assert load_policy(path).intent_threshold == 0.3

    def test_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "policy.json"
        save_json({"command_threshold": 0.9}, path)
        monkeypatch.setenv(POLICY_ENV_VAR, str(path))
        assert load_policy().command_threshold == 0.9

    def test_non_object_payload(self, tmp_path: Path) -> None:
        path = tmp_path / "policy.json"
        save_json([1, 2], path)
        with pytest.raises(ValueError, match="Invalid policy payload"):
            load_policy(path)
