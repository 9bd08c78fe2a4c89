"""Tests for LifecycleConfig loading, env resolution and validation."""

from __future__ import annotations

import json
import logging

import pytest
import yaml

from certlifecycle.config import ConfigValidationError, LifecycleConfig
from certlifecycle.core.types import DomainMatch, ServiceKind


def _write(tmp_path, data, name="config.yaml"):
    path = tmp_path / name
    if name.endswith(".json"):
        path.write_text(json.dumps(data), encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


class TestLoading:
    def test_yaml_defaults(self, tmp_config_file, tmp_path):
        cfg = LifecycleConfig(config_file=tmp_config_file)
        s = cfg.settings
        assert s.certbot.binary == "/usr/bin/certbot"
        assert s.certbot.challenge_port == 80
        assert s.schedule.hour == 3
        assert s.schedule.minute == 0
        assert s.renewal.domain_match is DomainMatch.TOKEN
        assert s.renewal.expiry_warning_days == 30
        assert s.logging.format == "text"
        assert [svc.name for svc in s.services] == ["onprem", "minio"]

    def test_json_file(self, tmp_path, config_data):
        path = _write(tmp_path, config_data, "config.json")
        cfg = LifecycleConfig(config_file=path)
        assert cfg.settings.service("minio").kind is ServiceKind.MINIO

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigValidationError, match="cannot read"):
            LifecycleConfig(config_file=tmp_path / "missing.yaml")

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="mapping"):
            LifecycleConfig(config_file=path)

    def test_repr(self, tmp_config_file):
        assert "LifecycleConfig" in repr(LifecycleConfig(config_file=tmp_config_file))


class TestEnvResolution:
    def test_env_var_substituted(self, tmp_path, config_data, monkeypatch):
        monkeypatch.setenv("ONPREM_DOMAIN", "files.example.org")
        config_data["services"][0]["domain"] = "${ONPREM_DOMAIN}"
        cfg = LifecycleConfig(config_file=_write(tmp_path, config_data))
        assert cfg.settings.service("onprem").domain == "files.example.org"

    def test_default_used_when_unset(self, tmp_path, config_data, monkeypatch):
        monkeypatch.delenv("CERTBOT_BIN", raising=False)
        config_data["certbot"]["binary"] = "${CERTBOT_BIN:-/snap/bin/certbot}"
        cfg = LifecycleConfig(config_file=_write(tmp_path, config_data))
        assert cfg.settings.certbot.binary == "/snap/bin/certbot"

    def test_unset_without_default_fails(self, tmp_path, config_data, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        config_data["services"][1]["domain"] = "${NOT_SET_ANYWHERE}"
        with pytest.raises(ConfigValidationError) as exc_info:
            LifecycleConfig(config_file=_write(tmp_path, config_data))
        assert "services[1].domain" in exc_info.value.errors[0]


class TestSchemaValidation:
    def test_services_required(self, tmp_path):
        with pytest.raises(ConfigValidationError, match="services"):
            LifecycleConfig(config_file=_write(tmp_path, {"certbot": {}}))

    def test_unknown_key_rejected(self, tmp_path, config_data):
        config_data["schedule"] = {"hour": 3, "weekday": 1}
        with pytest.raises(ConfigValidationError, match="weekday"):
            LifecycleConfig(config_file=_write(tmp_path, config_data))

    def test_hour_out_of_range(self, tmp_path, config_data):
        config_data["schedule"] = {"hour": 24}
        with pytest.raises(ConfigValidationError) as exc_info:
            LifecycleConfig(config_file=_write(tmp_path, config_data))
        assert exc_info.value.errors[0].startswith("schedule.hour")

    def test_bad_domain_match(self, tmp_path, config_data):
        config_data["renewal"] = {"domain_match": "regex"}
        with pytest.raises(ConfigValidationError, match="domain_match"):
            LifecycleConfig(config_file=_write(tmp_path, config_data))

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("compose_service", "onprem; rm -rf /"),
            ("container_name", "$(id)"),
            ("global_hook_name", "../escape.sh"),
        ],
    )
    def test_names_written_into_hook_are_restricted(self, tmp_path, config_data, key, value):
        config_data["services"][0][key] = value
        with pytest.raises(ConfigValidationError) as exc_info:
            LifecycleConfig(config_file=_write(tmp_path, config_data))
        assert exc_info.value.errors[0].startswith(f"services.0.{key}")

    def test_plain_compose_service_accepted(self, tmp_path, config_data):
        config_data["services"][0]["compose_service"] = "onprem_web-1.2"
        cfg = LifecycleConfig(config_file=_write(tmp_path, config_data))
        assert cfg.settings.service("onprem").compose_service == "onprem_web-1.2"

    def test_collects_every_error(self, tmp_path, config_data):
        config_data["schedule"] = {"hour": 99, "minute": 99}
        with pytest.raises(ConfigValidationError) as exc_info:
            LifecycleConfig(config_file=_write(tmp_path, config_data))
        assert len(exc_info.value.errors) == 2


class TestAdditionalChecks:
    def test_duplicate_service_names(self, tmp_path, config_data):
        config_data["services"][1]["name"] = "onprem"
        config_data["services"][1]["kind"] = "minio"
        with pytest.raises(ConfigValidationError, match="duplicated"):
            LifecycleConfig(config_file=_write(tmp_path, config_data))

    def test_kind_required_for_custom_name(self, tmp_path, config_data):
        config_data["services"][0]["name"] = "sharing"
        with pytest.raises(ConfigValidationError, match="kind is required"):
            LifecycleConfig(config_file=_write(tmp_path, config_data))

    def test_custom_name_with_kind(self, tmp_path, config_data):
        config_data["services"][0]["name"] = "sharing"
        config_data["services"][0]["kind"] = "onprem"
        cfg = LifecycleConfig(config_file=_write(tmp_path, config_data))
        svc = cfg.settings.service("sharing")
        assert svc.kind is ServiceKind.ONPREM
        assert svc.key_file == "server.key"

    def test_invalid_domain(self, tmp_path, config_data):
        config_data["services"][0]["domain"] = "not a domain"
        with pytest.raises(ConfigValidationError, match="not a valid DNS name"):
            LifecycleConfig(config_file=_write(tmp_path, config_data))

    def test_relative_base_dir(self, tmp_path, config_data):
        config_data["services"][0]["base_dir"] = "relative/onprem"
        with pytest.raises(ConfigValidationError, match="absolute"):
            LifecycleConfig(config_file=_write(tmp_path, config_data))

    def test_shared_base_dir(self, tmp_path, config_data):
        config_data["services"][1]["base_dir"] = config_data["services"][0]["base_dir"]
        with pytest.raises(ConfigValidationError, match="shared"):
            LifecycleConfig(config_file=_write(tmp_path, config_data))

    def test_missing_domain_only_warns(self, tmp_path, config_data, caplog):
        del config_data["services"][1]["domain"]
        with caplog.at_level(logging.WARNING, logger="certlifecycle.config.lifecycle_config"):
            cfg = LifecycleConfig(config_file=_write(tmp_path, config_data))
        assert cfg.settings.service("minio").domain == ""
        assert "--domain" in caplog.text

    def test_substring_match_warns(self, tmp_path, config_data, caplog):
        config_data["renewal"] = {"domain_match": "substring"}
        with caplog.at_level(logging.WARNING, logger="certlifecycle.config.lifecycle_config"):
            cfg = LifecycleConfig(config_file=_write(tmp_path, config_data))
        assert cfg.settings.renewal.domain_match is DomainMatch.SUBSTRING
        assert "substring" in caplog.text
