"""
YAML configuration of the simulator and the estimator.

A config file only needs the keys it changes; it is deep-merged over
``DEFAULT_CONFIG`` and validated before any component is built. Numeric
fields are coerced to ``float`` during validation, so a value PyYAML reads
as a string (``1.0e6`` has no signed exponent and is not a YAML 1.1 float)
still loads when it parses as a number.

Sections
--------
- robot: wheel_radius, track_width, collision_radius, initial_pose
- actuation: motor_cmd_to_rad_sec, motor_cmd_max, encoder_ticks_per_rad,
  input_noise, slip_fraction
- obstacles: list of {x, y, radius}
- sensor: max_range, variance
- slam: range_variance, bearing_variance, landmark_variance, process_noise
- random_seed
"""

import copy
import logging
import os

import numpy as np
import yaml

from ..data.messages import SlamSession
from ..errors import ConfigurationError
from ..geometry.se2 import Pose2D
from ..kinematics.diff_drive import DiffDrive
from ..simulation.actuation import ActuationModel
from ..simulation.collision import Obstacle
from ..simulation.sensor import LandmarkSensor
from ..simulation.simulator import Simulator
from ..slam.ekf_slam import ExtendedKalmanFilterSLAM
from ..slam.estimator import SlamEstimator

logger = logging.getLogger(__name__)

# turtlebot3 burger geometry and actuator constants
DEFAULT_CONFIG = {
    'robot': {
        'wheel_radius': 0.033,
        'track_width': 0.16,
        'collision_radius': 0.11,
        'initial_pose': [0.0, 0.0, 0.0],
    },
    'actuation': {
        'motor_cmd_to_rad_sec': 0.024,
        'motor_cmd_max': 265,
        'encoder_ticks_per_rad': 651.8986469044033,
        'input_noise': 0.0,
        'slip_fraction': 0.0,
    },
    'obstacles': [],
    'sensor': {
        'max_range': 1.0,
        'variance': 0.001,
    },
    'slam': {
        'range_variance': 0.01,
        'bearing_variance': 0.01,
        'landmark_variance': 1.0e6,
        'process_noise': [0.001, 0.001, 0.001],
    },
    'random_seed': 42,
}


def load_config(config_path):
    # load, merge over defaults and validate config file
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"config not found: {config_path}")

    with open(config_path, 'r') as f:
        overrides = yaml.safe_load(f) or {}

    if not isinstance(overrides, dict):
        raise ConfigurationError(f"config root must be a mapping: {config_path}")

    config = merge_config(DEFAULT_CONFIG, overrides)
    validate_config(config)
    logger.info("Loaded config from %s", config_path)
    return config


def merge_config(base, overrides):
    # recursive dict merge, overrides win
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _fail(message):
    logger.error(message)
    raise ConfigurationError(message)


def _as_number(value, name):
    try:
        return float(value)
    except (TypeError, ValueError):
        _fail(f"{name} must be a number, got {value!r}")


def _require_positive(section, key, config):
    value = config[section].get(key)
    if value is None:
        _fail(f"{section}.{key} parameter missing")
    value = _as_number(value, f"{section}.{key}")
    if value <= 0:
        _fail(f"{section}.{key} must be positive, got {value}")
    config[section][key] = value


def _require_non_negative(section, key, config):
    value = _as_number(config[section].get(key, 0.0), f"{section}.{key}")
    if value < 0:
        _fail(f"{section}.{key} must be non-negative, got {value}")
    config[section][key] = value


def _require_triple(section, key, config, message):
    values = config[section].get(key)
    if not isinstance(values, (list, tuple)) or len(values) != 3:
        _fail(message)
    config[section][key] = [_as_number(v, f"{section}.{key}") for v in values]


def validate_config(config):
    """
    Check required fields are present and usable.

    Numeric fields are converted to ``float`` in place.

    Raises
    ------
    ConfigurationError
        On a missing section or field, a non-numeric value, or a value out
        of range. The message is also logged at error level.
    """
    for section in ['robot', 'actuation', 'sensor', 'slam']:
        if not isinstance(config.get(section), dict):
            _fail(f"missing {section} in config")

    for key in ['wheel_radius', 'track_width', 'collision_radius']:
        _require_positive('robot', key, config)
    _require_triple('robot', 'initial_pose', config, "robot.initial_pose needs [x, y, theta]")

    # a zero conversion factor would silently freeze or explode the motion
    for key in ['motor_cmd_to_rad_sec', 'motor_cmd_max', 'encoder_ticks_per_rad']:
        _require_positive('actuation', key, config)
    for key in ['input_noise', 'slip_fraction']:
        _require_non_negative('actuation', key, config)

    for i, obstacle in enumerate(config.get('obstacles') or []):
        if not isinstance(obstacle, dict) or not all(k in obstacle for k in ('x', 'y', 'radius')):
            _fail(f"obstacle {i} needs x, y and radius")
        for k in ('x', 'y', 'radius'):
            obstacle[k] = _as_number(obstacle[k], f"obstacle {i} {k}")
        if obstacle['radius'] <= 0:
            _fail(f"obstacle {i} radius must be positive")

    for key in ['range_variance', 'bearing_variance', 'landmark_variance']:
        _require_positive('slam', key, config)
    _require_triple(
        'slam', 'process_noise', config, "slam.process_noise needs 3 variances [theta, x, y]"
    )

    _require_positive('sensor', 'max_range', config)
    _require_non_negative('sensor', 'variance', config)


def build_obstacles(config):
    return [
        Obstacle(float(o['x']), float(o['y']), float(o['radius']))
        for o in config.get('obstacles') or []
    ]


def build_simulator(config, rng=None):
    # simulator with actuation model, obstacles and landmark sensor
    if rng is None:
        rng = np.random.default_rng(config.get('random_seed'))

    robot = config['robot']
    actuation = config['actuation']
    sensor = config['sensor']
    return Simulator(
        diff_drive=DiffDrive(robot['wheel_radius'], robot['track_width']),
        actuation=ActuationModel(actuation['input_noise'], actuation['slip_fraction'], rng),
        initial_pose=Pose2D(*robot['initial_pose']),
        obstacles=build_obstacles(config),
        collision_radius=robot['collision_radius'],
        motor_cmd_to_rad_sec=actuation['motor_cmd_to_rad_sec'],
        encoder_ticks_per_rad=actuation['encoder_ticks_per_rad'],
        sensor=LandmarkSensor(sensor['max_range'], sensor['variance'], rng),
    )


def build_estimator(config):
    # odometry + EKF-SLAM estimator
    robot = config['robot']
    slam = config['slam']
    initial_pose = Pose2D(*robot['initial_pose'])
    ekf = ExtendedKalmanFilterSLAM(
        initial_pose=initial_pose,
        process_noise=np.diag(slam['process_noise']),
        measurement_noise=np.diag([slam['range_variance'], slam['bearing_variance']]),
        landmark_variance=slam['landmark_variance'],
    )
    return SlamEstimator(
        diff_drive=DiffDrive(robot['wheel_radius'], robot['track_width']),
        ekf=ekf,
        encoder_ticks_per_rad=config['actuation']['encoder_ticks_per_rad'],
        initial_pose=initial_pose,
    )


def build_session(config):
    return SlamSession(
        simulator=build_simulator(config),
        estimator=build_estimator(config),
        motor_cmd_max=config['actuation']['motor_cmd_max'],
    )


def print_config_summary(config):
    # log experiment setup
    logger.info(
        "Robot: wheel_radius=%s track_width=%s collision_radius=%s",
        config['robot']['wheel_radius'],
        config['robot']['track_width'],
        config['robot']['collision_radius'],
    )
    logger.info(
        "Actuation: input_noise=%s slip_fraction=%s",
        config['actuation']['input_noise'],
        config['actuation']['slip_fraction'],
    )
    logger.info("Obstacles: %d", len(config.get('obstacles') or []))
    logger.info("Random seed: %s", config.get('random_seed'))
