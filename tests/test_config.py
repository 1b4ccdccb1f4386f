import os

import pytest

from shield_action.config import (
    DEFAULT_HOST_TIMEOUT,
    KEY_ENV_VARS,
    EngineSettings,
    StoreKeys,
    load_env_local,
)

ENV_VARS = (
    "SHIELD_STORE_PATH",
    "SHIELD_HOST_URL",
    "SHIELD_HOST_TIMEOUT",
    *KEY_ENV_VARS.values(),
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        # setenv first so values written by load_env_local are undone too
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestEngineSettings:
    def test_defaults(self, clean_env):
        settings = EngineSettings.from_env()

        assert settings.store_path is None
        assert settings.host_url is None
        assert settings.host_timeout == DEFAULT_HOST_TIMEOUT
        assert settings.keys == StoreKeys()

    def test_reads_environment(self, clean_env):
        clean_env.setenv("SHIELD_STORE_PATH", "/tmp/shared.json")
        clean_env.setenv("SHIELD_HOST_URL", "http://127.0.0.1:5578")
        clean_env.setenv("SHIELD_HOST_TIMEOUT", "2.5")
        clean_env.setenv("SHIELD_KEY_WHITELIST", "allowList")

        settings = EngineSettings.from_env()

        assert settings.store_path == "/tmp/shared.json"
        assert settings.host_url == "http://127.0.0.1:5578"
        assert settings.host_timeout == 2.5
        assert settings.keys.whitelist_key == "allowList"
        assert settings.keys.global_config_key == "shieldActionConfig"

    def test_every_store_key_can_be_overridden(self, clean_env):
        for field, env in KEY_ENV_VARS.items():
            clean_env.setenv(env, f"custom_{field}")

        keys = EngineSettings.from_env().keys

        assert keys.monitored_names_key == "custom_monitored_names_key"
        assert keys.block_state_key == "custom_block_state_key"
        assert keys.effective_policy_key == "custom_effective_policy_key"
        assert keys.selection_ids_key == "custom_selection_ids_key"

    def test_invalid_timeout_falls_back(self, clean_env):
        clean_env.setenv("SHIELD_HOST_TIMEOUT", "soon")

        assert EngineSettings.from_env().host_timeout == DEFAULT_HOST_TIMEOUT


class TestLoadEnvLocal:
    def test_missing_file(self, tmp_path):
        assert load_env_local(tmp_path) is False

    def test_does_not_override_existing(self, tmp_path, clean_env):
        clean_env.setenv("SHIELD_HOST_URL", "http://kept")
        (tmp_path / ".env.local").write_text(
            "# comment\n"
            "SHIELD_HOST_URL=http://ignored\n"
            "SHIELD_STORE_PATH='/data/store.json'\n"
            "not a pair\n",
            encoding="utf-8",
        )

        assert load_env_local(tmp_path) is True
        assert os.environ["SHIELD_HOST_URL"] == "http://kept"
        assert os.environ["SHIELD_STORE_PATH"] == "/data/store.json"
