"""Unit tests for warden.core.config_migrate."""

from __future__ import annotations

import pytest

from warden.core.config_migrate import CURRENT_CONFIG_VERSION, detect_version, upgrade_config
from warden.core.exceptions import ConfigurationError

V0 = {
    "watchtower_url": "https://watch.example.com",
    "api_key": "k3y",
    "send_plugin_names": "1",
    "site_url": "https://site.example.org",
}


class TestDetectVersion:
    def test_flat_file_is_v0(self) -> None:
        assert detect_version(dict(V0)) == 0

    def test_explicit_version(self) -> None:
        assert detect_version({"config_version": 1}) == 1


class TestUpgradeV0:
    def test_keys_moved_into_sections(self) -> None:
        data = upgrade_config(dict(V0), 0, CURRENT_CONFIG_VERSION)
        assert data["config_version"] == 1
        assert data["watchtower"] == {"url": "https://watch.example.com", "secret": "k3y"}
        assert data["privacy"] == {"send_component_names": True}
        assert data["site"] == {"url": "https://site.example.org"}
        assert not set(V0) & set(data)

    @pytest.mark.parametrize("flag,expected", [("0", False), ("", False), ("yes", True), (True, True)])
    def test_privacy_flag_values(self, flag, expected) -> None:
        data = upgrade_config({"send_plugin_names": flag}, 0, 1)
        assert data["privacy"]["send_component_names"] is expected

    def test_existing_section_values_win(self) -> None:
        data = upgrade_config(
            {"watchtower_url": "https://old.example.com", "watchtower": {"url": "https://new.example.com"}},
            0,
            1,
        )
        assert data["watchtower"]["url"] == "https://new.example.com"

    def test_same_version_noop(self) -> None:
        data = {"config_version": 1, "site": {"url": "x"}}
        assert upgrade_config(data, 1, 1) is data


class TestUpgradeErrors:
    def test_downgrade_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="downgrade"):
            upgrade_config({}, 1, 0)

    def test_missing_step(self) -> None:
        with pytest.raises(ConfigurationError, match="No migration path"):
            upgrade_config({}, CURRENT_CONFIG_VERSION, CURRENT_CONFIG_VERSION + 1)
