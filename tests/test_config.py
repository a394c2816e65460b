"""
Unit tests for OpsDeskConfig.

Tests defaults, environment overrides and file loading.
"""

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from opsdesk.config import OpsDeskConfig


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        config = OpsDeskConfig()

        assert config.api_port == 8000
        assert config.default_driver == "local"
        assert config.dataset_root == "tank/docker/volumes"
        assert config.soft_delete_volumes is True
        assert config.allow_record_payload_edits is False
        assert config.terminal_saga_statuses == ["completed", "failed", "compensated"]
        assert config.default_page_size == 10

    @pytest.mark.parametrize("root", ["/tank/vols", "", "tank//vols", "tank/../vols"])
    def test_invalid_dataset_root_rejected(self, root):
        with pytest.raises(PydanticValidationError):
            OpsDeskConfig(dataset_root=root)

    def test_dataset_root_trailing_slash_stripped(self):
        assert OpsDeskConfig(dataset_root="tank/vols/").dataset_root == "tank/vols"

    def test_invalid_port_rejected(self):
        with pytest.raises(PydanticValidationError):
            OpsDeskConfig(api_port=0)


class TestFromEnv:
    """Tests for environment variable loading."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("OPSDESK_API_PORT", "9100")
        monkeypatch.setenv("OPSDESK_DATASET_ROOT", "pool/vols")
        monkeypatch.setenv("OPSDESK_SOFT_DELETE", "False")
        monkeypatch.setenv("OPSDESK_ALLOW_RECORD_EDITS", "true")
        monkeypatch.setenv("OPSDESK_TERMINAL_STATUSES", "SUCCEEDED, aborted,,")
        monkeypatch.setenv("OPSDESK_PAGE_SIZE", "25")
        monkeypatch.setenv("OPSDESK_LOG_LEVEL", "debug")

        config = OpsDeskConfig.from_env()

        assert config.api_port == 9100
        assert config.dataset_root == "pool/vols"
        assert config.soft_delete_volumes is False
        assert config.allow_record_payload_edits is True
        assert config.terminal_saga_statuses == ["SUCCEEDED", "aborted"]
        assert config.default_page_size == 25
        assert config.log_level == "DEBUG"

    def test_unset_env_uses_defaults(self, monkeypatch):
        monkeypatch.delenv("OPSDESK_DATASET_ROOT", raising=False)
        monkeypatch.delenv("OPSDESK_SOFT_DELETE", raising=False)

        config = OpsDeskConfig.from_env()

        assert config.dataset_root == "tank/docker/volumes"
        assert config.soft_delete_volumes is True


class TestFromFile:
    """Tests for file loading."""

    def test_yaml(self, temp_dir):
        path = temp_dir / "opsdesk.yaml"
        path.write_text(
            "dataset_root: pool/docker\n"
            "max_page_size: 100\n"
            "terminal_saga_statuses:\n"
            "  - done\n"
        )

        config = OpsDeskConfig.from_file(str(path))

        assert config.dataset_root == "pool/docker"
        assert config.max_page_size == 100
        assert config.terminal_saga_statuses == ["done"]

    def test_empty_yaml(self, temp_dir):
        path = temp_dir / "empty.yml"
        path.write_text("")

        config = OpsDeskConfig.from_file(str(path))

        assert config == OpsDeskConfig()

    def test_json(self, temp_dir):
        path = temp_dir / "opsdesk.json"
        path.write_text(json.dumps({"soft_delete_volumes": False, "api_port": 8080}))

        config = OpsDeskConfig.from_file(str(path))

        assert config.soft_delete_volumes is False
        assert config.api_port == 8080

    def test_unsupported_format(self, temp_dir):
        path = temp_dir / "opsdesk.toml"
        path.write_text("api_port = 1")

        with pytest.raises(ValueError, match="Unsupported config format"):
            OpsDeskConfig.from_file(str(path))
