import logging
from pathlib import Path

import pytest
import yaml

from diffbot_slam.data.messages import SlamSession
from diffbot_slam.errors import ConfigurationError
from diffbot_slam.utils.config_loader import (
    DEFAULT_CONFIG,
    build_estimator,
    build_obstacles,
    build_session,
    build_simulator,
    load_config,
    merge_config,
    print_config_summary,
    validate_config,
)

EXAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "config" / "diffbot.yaml"


def _write(tmp_path, data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def test_overrides_are_merged_over_defaults(tmp_path):
    config = load_config(_write(tmp_path, {'actuation': {'slip_fraction': 0.2}}))
    assert config['actuation']['slip_fraction'] == 0.2
    assert config['actuation']['motor_cmd_max'] == 265
    assert config['robot'] == DEFAULT_CONFIG['robot']


def test_merge_does_not_mutate_defaults():
    merged = merge_config(DEFAULT_CONFIG, {'robot': {'wheel_radius': 1.0}})
    assert merged['robot']['wheel_radius'] == 1.0
    assert DEFAULT_CONFIG['robot']['wheel_radius'] == 0.033


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == DEFAULT_CONFIG


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_non_mapping_root(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(_write(tmp_path, [1, 2, 3]))


@pytest.mark.parametrize(
    "overrides",
    [
        {'actuation': {'encoder_ticks_per_rad': 0}},
        {'actuation': {'motor_cmd_to_rad_sec': None}},
        {'robot': {'wheel_radius': -0.1}},
        {'robot': {'initial_pose': [0.0, 0.0]}},
        {'actuation': {'slip_fraction': -0.1}},
        {'obstacles': [{'x': 1.0, 'y': 0.0}]},
        {'obstacles': [{'x': 1.0, 'y': 0.0, 'radius': 0.0}]},
        {'slam': {'process_noise': [0.1]}},
        {'sensor': {'max_range': 0.0}},
    ],
)
def test_invalid_config_is_rejected(overrides, caplog):
    config = merge_config(DEFAULT_CONFIG, overrides)
    with caplog.at_level(logging.ERROR), pytest.raises(ConfigurationError):
        validate_config(config)
    assert caplog.records


def test_example_config_builds_a_session():
    config = load_config(EXAMPLE_CONFIG)
    session = build_session(config)

    assert isinstance(session, SlamSession)
    assert len(session.simulator.obstacles) == 3
    assert session.motor_cmd_max == 265
    assert session.estimator.ekf.R[0, 0] == config['slam']['range_variance']


def test_simulator_shares_one_random_stream(noiseless_config):
    sim = build_simulator(noiseless_config)
    assert sim.actuation.rng is sim.sensor.rng


def test_builders_use_initial_pose():
    config = merge_config(DEFAULT_CONFIG, {'robot': {'initial_pose': [1.0, -1.0, 0.5]}})
    sim = build_simulator(config)
    estimator = build_estimator(config)
    assert sim.get_true_pose().x == 1.0
    assert estimator.get_pose_estimate().theta == 0.5
    assert estimator.get_odometry_pose().y == -1.0


def test_build_obstacles(noiseless_config):
    obstacles = build_obstacles(noiseless_config)
    assert [(o.x, o.y) for o in obstacles] == [(0.5, 0.2), (0.5, -0.2)]


def test_print_config_summary(noiseless_config, caplog):
    with caplog.at_level(logging.INFO):
        print_config_summary(noiseless_config)
    assert "Obstacles: 2" in caplog.text


def test_unsigned_exponent_is_read_as_a_number(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("slam:\n  landmark_variance: 1.0e6\n")
    assert yaml.safe_load(path.read_text())['slam']['landmark_variance'] == '1.0e6'

    config = load_config(path)

    assert config['slam']['landmark_variance'] == 1.0e6
    assert build_estimator(config).ekf.landmark_variance == 1.0e6


def test_example_config_values_are_numbers():
    config = load_config(EXAMPLE_CONFIG)
    assert config['slam']['landmark_variance'] == 1.0e6
    assert all(isinstance(v, float) for v in config['slam']['process_noise'])


@pytest.mark.parametrize(
    "overrides",
    [
        {'actuation': {'slip_fraction': 'lots'}},
        {'actuation': {'input_noise': [0.1]}},
        {'slam': {'landmark_variance': 'big'}},
        {'robot': {'initial_pose': [0.0, 'north', 0.0]}},
        {'obstacles': [{'x': 'left', 'y': 0.0, 'radius': 0.1}]},
        {'sensor': {'variance': 'none'}},
    ],
)
def test_non_numeric_value_is_rejected(overrides, caplog):
    config = merge_config(DEFAULT_CONFIG, overrides)
    with caplog.at_level(logging.ERROR), pytest.raises(ConfigurationError, match="must be a number"):
        validate_config(config)
    assert caplog.records
