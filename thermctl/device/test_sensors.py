from pathlib import Path

import pytest

from thermctl.core.errors import SensorUnavailable
from thermctl.device.sensors import SensorReader


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _coretemp(root: Path, inputs: dict, name: str = "coretemp") -> Path:
    hwmon = root / "class" / "hwmon" / "hwmon3"
    _write(hwmon / "name", f"{name}\n")
    for idx, (label, value) in enumerate(inputs.items(), start=1):
        _write(hwmon / f"temp{idx}_input", f"{value}\n")
        if label:
            _write(hwmon / f"temp{idx}_label", f"{label}\n")
    return hwmon


def test_reads_package_and_core_peaks(tmp_path):
    _coretemp(
        tmp_path,
        {"Package id 0": 52000, "Core 0": 49000, "Core 1": 55000, "Core 10": 47000},
    )
    reading = SensorReader(tmp_path).read()
    assert reading.package_c == 52.0
    assert reading.core_peaks_c == [49.0, 55.0, 47.0]
    assert reading.hottest_core_c == 55.0
    assert reading.source == "hwmon:coretemp"


def test_k10temp_tctl(tmp_path):
    _coretemp(tmp_path, {"Tctl": 61250, "Tccd1": 58000}, name="k10temp")
    reading = SensorReader(tmp_path).read()
    assert reading.package_c == pytest.approx(61.25)
    assert reading.core_peaks_c == []


def test_without_package_label_uses_hottest_core(tmp_path):
    _coretemp(tmp_path, {"Core 0": 44000, "Core 1": 46000})
    assert SensorReader(tmp_path).read().package_c == 46.0


def test_ignores_non_cpu_hwmon(tmp_path):
    hwmon = tmp_path / "class" / "hwmon" / "hwmon0"
    _write(hwmon / "name", "nvme\n")
    _write(hwmon / "temp1_input", "39000\n")
    with pytest.raises(SensorUnavailable):
        SensorReader(tmp_path).read()


def test_falls_back_to_thermal_zone(tmp_path):
    zones = tmp_path / "class" / "thermal"
    _write(zones / "thermal_zone0" / "type", "acpitz\n")
    _write(zones / "thermal_zone0" / "temp", "41000\n")
    _write(zones / "thermal_zone1" / "type", "x86_pkg_temp\n")
    _write(zones / "thermal_zone1" / "temp", "48000\n")
    reading = SensorReader(tmp_path).read()
    assert reading.package_c == 48.0
    assert reading.source == "thermal:thermal_zone1:x86_pkg_temp"


def test_missing_sensor_raises(tmp_path):
    with pytest.raises(SensorUnavailable):
        SensorReader(tmp_path).read()


def test_garbage_and_implausible_values_are_skipped(tmp_path):
    zones = tmp_path / "class" / "thermal"
    _write(zones / "thermal_zone0" / "type", "x86_pkg_temp\n")
    _write(zones / "thermal_zone0" / "temp", "garbage\n")
    _write(zones / "thermal_zone1" / "type", "acpitz\n")
    _write(zones / "thermal_zone1" / "temp", "255000\n")
    with pytest.raises(SensorUnavailable):
        SensorReader(tmp_path).read()
