"""Tests for keyreg/config.py - YAML configuration management."""

import pytest
import yaml

from keyreg.config import Config


class TestConfig:
    """Tests for Config dataclass."""

    def test_default_values(self):
        config = Config()
        assert config.port == 22
        assert config.transport == "ssh"
        assert config.ssh_options == []
        assert config.connect_timeout == 5
        assert config.use_copy_id is True
        assert config.public_key is None
        assert config.generated_key is None
        assert config.log_level == "INFO"
        assert config.log_file is None

    def test_custom_values(self):
        config = Config(
            port=2222,
            transport="paramiko",
            ssh_options=["StrictHostKeyChecking=accept-new"],
            connect_timeout=10,
            use_copy_id=False,
            log_level="DEBUG",
        )
        assert config.port == 2222
        assert config.transport == "paramiko"
        assert config.ssh_options == ["StrictHostKeyChecking=accept-new"]
        assert config.use_copy_id is False


class TestConfigLoad:
    """Tests for Config.load()."""

    def test_load_nonexistent_file(self, tmp_path):
        config = Config.load(tmp_path / "nonexistent.yaml")
        # Should return default config
        assert config.port == 22
        assert config.transport == "ssh"

    def test_load_empty_file(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        config = Config.load(config_file)
        assert config.port == 22

    def test_load_partial_config(self, tmp_path):
        config_file = tmp_path / "partial.yaml"
        config_file.write_text("port: 2222\nuse_copy_id: false\n")
        config = Config.load(config_file)
        assert config.port == 2222
        assert config.use_copy_id is False
        # Defaults should still apply
        assert config.connect_timeout == 5
        assert config.log_level == "INFO"

    def test_load_full_config(self, tmp_path):
        config_file = tmp_path / "full.yaml"
        data = {
            "port": 3333,
            "transport": "paramiko",
            "ssh_options": ["UserKnownHostsFile=/dev/null"],
            "connect_timeout": 15,
            "use_copy_id": False,
            "public_key": "~/.ssh/work.pub",
            "generated_key": "~/.ssh/id_work",
            "log_level": "WARNING",
            "log_file": "/tmp/keyreg.log",
        }
        config_file.write_text(yaml.dump(data))
        config = Config.load(config_file)

        assert config.port == 3333
        assert config.transport == "paramiko"
        assert config.ssh_options == ["UserKnownHostsFile=/dev/null"]
        assert config.connect_timeout == 15
        assert config.public_key == "~/.ssh/work.pub"
        assert config.generated_key == "~/.ssh/id_work"
        assert config.log_level == "WARNING"
        assert config.log_file == "/tmp/keyreg.log"

    def test_unknown_transport(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("transport: telnet\n")

        with pytest.raises(ValueError, match="Unknown transport"):
            Config.load(config_file)

    def test_blank_values_use_defaults(self, tmp_path):
        config_file = tmp_path / "blank.yaml"
        config_file.write_text("ssh_options:\nport:\nconnect_timeout:\nuse_copy_id:\ntransport:\n")

        config = Config.load(config_file)

        assert config == Config()

    def test_single_ssh_option_string(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("ssh_options: StrictHostKeyChecking=accept-new\n")

        config = Config.load(config_file)

        assert config.ssh_options == ["StrictHostKeyChecking=accept-new"]

    def test_top_level_not_a_mapping(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            Config.load(config_file)

    def test_wrong_value_type(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("port: [22]\n")

        with pytest.raises(ValueError, match="Invalid value"):
            Config.load(config_file)


class TestConfigSave:
    """Tests for Config.save()."""

    def test_save_creates_parent_dirs(self, tmp_path):
        config_file = tmp_path / "deep" / "nested" / "config.yaml"
        Config().save(config_file)
        assert config_file.exists()

    def test_save_content(self, tmp_path):
        config = Config(port=4444, ssh_options=["Compression=yes"])
        config_file = tmp_path / "content.yaml"
        config.save(config_file)

        with open(config_file) as f:
            data = yaml.safe_load(f)

        assert data["port"] == 4444
        assert data["ssh_options"] == ["Compression=yes"]
        assert data["transport"] == "ssh"

    def test_roundtrip(self, tmp_path):
        original = Config(
            port=5555,
            transport="paramiko",
            ssh_options=["ServerAliveInterval=30"],
            connect_timeout=3,
            use_copy_id=False,
            public_key="/keys/id.pub",
            log_level="ERROR",
        )
        config_file = tmp_path / "roundtrip.yaml"
        original.save(config_file)
        restored = Config.load(config_file)

        assert restored == original
