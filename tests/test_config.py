import pytest
from pydantic import ValidationError

from config import EditorConfig


def test_defaults():
    config = EditorConfig()
    assert config.max_history == 50
    assert (config.min_zoom, config.max_zoom) == (0.1, 5.0)
    assert (config.port_size, config.port_margin) == (15.0, 2.0)
    assert (config.default_node_width, config.default_node_height) == (120.0, 80.0)


def test_clamp_zoom():
    config = EditorConfig()
    assert config.clamp_zoom(10) == 5.0
    assert config.clamp_zoom(0.01) == 0.1
    assert config.clamp_zoom(2) == 2


def test_from_dict_coerces_and_ignores_unknown_keys():
    config = EditorConfig.from_dict({"max_history": "20", "max_zoom": "8", "colour": "red"})
    assert config.max_history == 20
    assert isinstance(config.max_history, int)
    assert config.max_zoom == 8.0
    assert isinstance(config.max_zoom, float)


def test_from_env():
    config = EditorConfig.from_env({
        "FLOWCANVAS_MAX_HISTORY": "10",
        "FLOWCANVAS_WHEEL_ZOOM_FACTOR": "1.5",
        "MAX_ZOOM": "9",
    })
    assert config.max_history == 10
    assert config.wheel_zoom_factor == 1.5
    assert config.max_zoom == 5.0


def test_with_overrides_leaves_original():
    config = EditorConfig()
    other = config.with_overrides(port_size=20.0)
    assert other.port_size == 20.0
    assert config.port_size == 15.0


def test_from_env_rejects_unparseable_value():
    with pytest.raises(ValidationError):
        EditorConfig.from_env({"FLOWCANVAS_MAX_HISTORY": "lots"})


def test_process_environment_is_read(monkeypatch):
    monkeypatch.setenv("FLOWCANVAS_PORT_SIZE", "18")
    assert EditorConfig.from_env().port_size == 18.0


@pytest.mark.parametrize("fields", [
    {"max_history": 0},
    {"min_zoom": 0},
    {"min_zoom": 3, "max_zoom": 2},
    {"wheel_zoom_factor": 1},
])
def test_out_of_range_values_are_rejected(fields):
    with pytest.raises(ValidationError):
        EditorConfig(**fields)
