# tests/test_config.py
import pytest

from hopwatch.config import MonitorConfig, quantize_interval
from hopwatch.errors import ConfigError


def test_interval_is_quantized_up_to_fifth_of_a_second():
    assert quantize_interval(0.2) == 0.2
    assert quantize_interval(0.5) == 0.6
    assert quantize_interval(1.0) == 1.0
    assert quantize_interval(0.01) == 0.2


def test_validate_normalises_interval_and_deadline(tmp_path):
    cfg = MonitorConfig(targets=["a", " a ", "b"], interval_s=0.5, log_dir=tmp_path).validate()
    assert cfg.targets == ["a", "b"]
    assert cfg.interval_s == 0.6
    assert cfg.interval_steps == 3
    assert cfg.probe_deadline_s == 0.6


def test_capacity_covers_the_chart_window(tmp_path):
    cfg = MonitorConfig(interval_s=0.2, buffer_seconds=30, log_dir=tmp_path).validate()
    assert cfg.capacity == 150


@pytest.mark.parametrize("kwargs", [
    {"targets": []},
    {"interval_s": 0},
    {"buffer_seconds": -1},
    {"interval_s": 1.0, "probe_deadline_s": 1.5},
    {"probe_deadline_s": 0},
    {"ip_version": 5},
    {"max_hops": 0},
])
def test_invalid_values_raise(kwargs, tmp_path):
    with pytest.raises(ConfigError):
        MonitorConfig(log_dir=tmp_path, **kwargs).validate()
