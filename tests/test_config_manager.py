"""
Tests for core.config_manager.
"""

import yaml

from core.config_manager import CloneConfig, ConfigManager


class TestConfigManager:

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)
        monkeypatch.delenv("CHAINCLONE_CHAIN", raising=False)
        mgr = ConfigManager(str(tmp_path / "config.yaml"))

        assert mgr.config == CloneConfig()
        assert mgr.config.anonymous_cooldown == 5.0

    def test_load_from_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)
        monkeypatch.delenv("CHAINCLONE_CHAIN", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({
            "etherscan_api_key": "from-file",
            "chain": "polygon",
            "compile_timeout": 60,
            "legacy_setting": True,
        }))

        mgr = ConfigManager(str(config_file))

        assert mgr.config.etherscan_api_key == "from-file"
        assert mgr.config.chain == "polygon"
        assert mgr.config.compile_timeout == 60
        assert not hasattr(mgr.config, "legacy_setting")

    def test_env_overrides_file(self, tmp_path, mock_env_api_keys, monkeypatch):
        monkeypatch.setenv("CHAINCLONE_CHAIN", "base")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"etherscan_api_key": "from-file", "chain": "polygon"}))

        mgr = ConfigManager(str(config_file))

        assert mgr.config.etherscan_api_key == "test-fake-etherscan-key"
        assert mgr.config.chain == "base"

    def test_malformed_yaml_keeps_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)
        monkeypatch.delenv("CHAINCLONE_CHAIN", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text("chain: [unterminated\n")

        mgr = ConfigManager(str(config_file))
        assert mgr.config.chain == "ethereum"

    def test_save_and_reload(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)
        monkeypatch.delenv("CHAINCLONE_CHAIN", raising=False)
        config_file = tmp_path / "nested" / "config.yaml"
        mgr = ConfigManager(str(config_file))
        mgr.set_etherscan_key("saved-key")

        assert yaml.safe_load(config_file.read_text())["etherscan_api_key"] == "saved-key"
        assert ConfigManager(str(config_file)).config.etherscan_api_key == "saved-key"

    def test_save_keeps_environment_overrides_out_of_file(self, tmp_path, mock_env_api_keys, monkeypatch):
        monkeypatch.setenv("CHAINCLONE_CHAIN", "base")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"chain": "polygon"}))

        mgr = ConfigManager(str(config_file))
        mgr.set_etherscan_key("saved-key")

        saved = yaml.safe_load(config_file.read_text())
        assert saved["chain"] == "polygon"
        assert saved["etherscan_api_key"] == "saved-key"
        assert mgr.config.chain == "base"

    def test_show_config_masks_key(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("ETHERSCAN_API_KEY", "ABCD1234567890WXYZ")
        mgr = ConfigManager(str(tmp_path / "config.yaml"))
        mgr.show_config()

        out = capsys.readouterr().out
        assert "ABCD" in out
        assert "ABCD1234567890WXYZ" not in out
