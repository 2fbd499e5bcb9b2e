import pytest

from thermctl.core.history import TemperatureHistory
from thermctl.core.surface import estimate


def test_estimate_linear_model():
    assert estimate(22.0) == pytest.approx(22.0)
    assert estimate(52.0) == pytest.approx(35.5)
    assert estimate(70.0, ambient_c=25.0, k=0.5) == pytest.approx(47.5)


def test_estimate_below_ambient():
    assert estimate(12.0) == pytest.approx(17.5)


def test_history_is_bounded_fifo():
    history = TemperatureHistory(capacity=2)
    history.push(10.0, 5.0)
    history.push(20.0, 10.0)
    history.push(30.0, 15.0)
    assert len(history) == 2
    assert history.cpu_temps() == [20.0, 30.0]
    assert history.surface_temps() == [10.0, 15.0]


def test_history_smoothing():
    history = TemperatureHistory()
    assert history.is_empty()
    assert history.smoothed_cpu(3) is None
    for temp in (40.0, 50.0, 60.0):
        history.push(temp, 0.0)
    assert history.smoothed_cpu(1) == 60.0
    assert history.smoothed_cpu(2) == pytest.approx(55.0)
    assert history.smoothed_cpu(10) == pytest.approx(50.0)


def test_history_rejects_zero_capacity():
    with pytest.raises(ValueError):
        TemperatureHistory(capacity=0)
