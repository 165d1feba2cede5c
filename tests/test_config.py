import pwd
from unittest.mock import patch

import pytest

from omamount.config.settings import find_local_override, load_desired_config, resolve_owner
from omamount.errors import ConfigError


def write(path, text):
    path.write_text(text)
    return str(path)


def test_local_override_only(tmp_path):
    local = write(tmp_path / "omamount.local.yaml", "nas_host: nas.local\nshares: [media, backup]\n")

    cfg = load_desired_config(env={}, local_override_paths=[local])

    assert cfg.endpoint == "nas.local"
    assert [s.name for s in cfg.shares] == ["media", "backup"]
    assert cfg.mount_root == "/mnt/nas"
    assert cfg.credential_path == "/etc/samba/credentials/omamount.creds"


def test_precedence_env_over_file_over_local(tmp_path):
    local = write(tmp_path / "local.yaml", "nas_host: local-nas\nmount_root: /local\nshares: [a]\ncredentials_file: /local.creds\n")
    explicit = write(tmp_path / "explicit.yaml", "nas_host: file-nas\nmount_root: /file\n")
    env = {"NAS_IP": "env-nas"}

    cfg = load_desired_config(config_file=explicit, env=env, local_override_paths=[local])

    assert cfg.endpoint == "env-nas"
    assert cfg.mount_root == "/file"
    assert cfg.credential_path == "/local.creds"
    assert [s.name for s in cfg.shares] == ["a"]


def test_config_file_from_environment(tmp_path):
    path = write(tmp_path / "c.yaml", "nas_ip: 10.0.0.5\nshares:\n  - photos\n")

    cfg = load_desired_config(env={"CONFIG_FILE": path}, local_override_paths=[])

    assert cfg.endpoint == "10.0.0.5"
    assert cfg.is_complete


def test_unreadable_config_file_env_is_ignored(tmp_path):
    cfg = load_desired_config(env={"CONFIG_FILE": str(tmp_path / "nope.yaml")}, local_override_paths=[])
    assert not cfg.is_complete


def test_explicit_missing_file_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        load_desired_config(config_file=str(tmp_path / "nope.yaml"), env={}, local_override_paths=[])


def test_malformed_yaml_is_an_error(tmp_path):
    path = write(tmp_path / "bad.yaml", "nas_host: [unclosed\n")
    with pytest.raises(ConfigError):
        load_desired_config(config_file=path, env={}, local_override_paths=[])


def test_shares_must_be_a_list(tmp_path):
    path = write(tmp_path / "bad.yaml", "nas_host: nas\nshares: media\n")
    with pytest.raises(ConfigError):
        load_desired_config(config_file=path, env={}, local_override_paths=[])


def test_env_mount_root_and_credentials(tmp_path):
    env = {"NAS_IP": "nas", "MOUNT_ROOT": "/srv/nas", "CREDENTIALS_FILE": "/root/nas.creds"}
    cfg = load_desired_config(env=env, local_override_paths=[])
    assert cfg.mount_root == "/srv/nas"
    assert cfg.credential_path == "/root/nas.creds"
    assert cfg.shares == []


def test_find_local_override_first_readable(tmp_path):
    second = write(tmp_path / "second.yaml", "{}")
    assert find_local_override([str(tmp_path / "first.yaml"), second]) == second
    assert find_local_override([]) is None


@patch("omamount.config.settings.pwd.getpwnam")
def test_resolve_owner_prefers_sudo_user(mock_getpwnam):
    mock_getpwnam.return_value = pwd.struct_passwd(("bob", "x", 1001, 1002, "", "/home/bob", "/bin/sh"))

    assert resolve_owner({"SUDO_USER": "bob", "USER": "root"}) == (1001, 1002)
    mock_getpwnam.assert_called_with("bob")


@patch("omamount.config.settings.pwd.getpwnam", side_effect=KeyError("nobody-here"))
def test_resolve_owner_falls_back(mock_getpwnam):
    assert resolve_owner({"USER": "ghost"}) == (1000, 1000)
    assert resolve_owner({}) == (1000, 1000)


@patch("omamount.config.settings.pwd.getpwnam")
def test_resolve_owner_ignores_sudo_root(mock_getpwnam):
    mock_getpwnam.return_value = pwd.struct_passwd(("carol", "x", 1005, 1005, "", "/home/carol", "/bin/sh"))
    resolve_owner({"SUDO_USER": "root", "USER": "carol"})
    mock_getpwnam.assert_called_with("carol")
