import pytest

from thermctl.core.config import ConfigStore


def test_missing_file_gives_defaults(tmp_path, monkeypatch):
    for key in ("THERMCTL_OVERRIDE", "THERMCTL_LOG", "THERMCTL_SYSFS"):
        monkeypatch.delenv(key, raising=False)
    cfg = ConfigStore(str(tmp_path / "config.toml")).load()
    assert cfg.core.tick_interval == 30.0
    assert cfg.core.override_path == "/var/lib/thermctl/override"
    assert cfg.surface.ambient_c == 22.0
    assert cfg.surface.transfer_k == 0.45
    assert cfg.governor.hysteresis_c == 0.0
    assert cfg.governor.smoothing_window == 1
    assert cfg.actuator.driver == "auto"
    assert cfg.sensor.sysfs_root == "/sys"


def test_values_from_toml(tmp_path, monkeypatch):
    monkeypatch.delenv("THERMCTL_LOG", raising=False)
    path = tmp_path / "config.toml"
    path.write_text(
        """
[core]
tick_interval = 10
log_path = "/tmp/thermctl.log"

[surface]
ambient_c = 25.5

[governor]
hysteresis_c = 1.5
smoothing_window = 3

[actuator]
driver = "freq"
""",
        encoding="utf-8",
    )
    cfg = ConfigStore(str(path)).load()
    assert cfg.core.tick_interval == 10.0
    assert cfg.core.log_path == "/tmp/thermctl.log"
    assert cfg.surface.ambient_c == 25.5
    assert cfg.surface.transfer_k == 0.45
    assert cfg.governor.hysteresis_c == 1.5
    assert cfg.governor.smoothing_window == 3
    assert cfg.actuator.driver == "freq"


def test_env_overrides_paths(tmp_path, monkeypatch):
    monkeypatch.setenv("THERMCTL_OVERRIDE", str(tmp_path / "ov"))
    monkeypatch.setenv("THERMCTL_SYSFS", str(tmp_path / "sys"))
    cfg = ConfigStore(str(tmp_path / "config.toml")).load()
    assert cfg.core.override_path == str(tmp_path / "ov")
    assert cfg.sensor.sysfs_root == str(tmp_path / "sys")
    assert cfg.actuator.sysfs_root == str(tmp_path / "sys")


@pytest.mark.parametrize(
    "body",
    [
        '[actuator]\ndriver = "turbo"\n',
        "[governor]\nsmoothing_window = 0\n",
        "[governor]\nhysteresis_c = -1\n",
        "[governor]\nsmoothing_window = 10\nhistory_capacity = 5\n",
    ],
)
def test_invalid_values_raise(tmp_path, body):
    path = tmp_path / "config.toml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ValueError):
        ConfigStore(str(path)).load()


def test_get_reloads_on_mtime_change(tmp_path):
    import os

    path = tmp_path / "config.toml"
    path.write_text("[core]\ntick_interval = 5\n", encoding="utf-8")
    store = ConfigStore(str(path))
    assert store.load().core.tick_interval == 5.0
    path.write_text("[core]\ntick_interval = 7\n", encoding="utf-8")
    st = path.stat()
    os.utime(path, (st.st_atime, st.st_mtime + 10))
    assert store.get().core.tick_interval == 7.0


@pytest.mark.parametrize(
    "body, key",
    [
        ("[governor]\nsmoothing_window = [3]\n", "governor.smoothing_window"),
        ("[surface]\nambient_c = {}\n", "surface.ambient_c"),
        ('[core]\ntick_interval = "soon"\n', "core.tick_interval"),
    ],
)
def test_wrong_value_types_name_the_key(tmp_path, body, key):
    path = tmp_path / "config.toml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ValueError, match=key):
        ConfigStore(str(path)).load()


def test_unreadable_file_is_a_config_error(tmp_path):
    with pytest.raises(ValueError, match="cannot read"):
        ConfigStore(str(tmp_path)).load()
