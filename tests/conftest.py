import numpy as np
import pytest

from diffbot_slam.kinematics.diff_drive import DiffDrive
from diffbot_slam.simulation.simulator import Simulator
from diffbot_slam.slam.ekf_slam import ExtendedKalmanFilterSLAM
from diffbot_slam.utils.config_loader import DEFAULT_CONFIG, merge_config

WHEEL_RADIUS = 0.033
TRACK_WIDTH = 0.16


@pytest.fixture
def ddrive():
    return DiffDrive(WHEEL_RADIUS, TRACK_WIDTH)


@pytest.fixture
def simulator(ddrive):
    # one motor command unit == 1 rad/s keeps wheel speeds readable
    return Simulator(ddrive, motor_cmd_to_rad_sec=1.0, encoder_ticks_per_rad=100.0)


@pytest.fixture
def ekf():
    return ExtendedKalmanFilterSLAM(
        process_noise=np.diag([1e-3, 1e-3, 1e-3]),
        measurement_noise=np.diag([1e-2, 1e-2]),
    )


@pytest.fixture
def noiseless_config():
    return merge_config(
        DEFAULT_CONFIG,
        {
            'obstacles': [
                {'x': 0.5, 'y': 0.2, 'radius': 0.038},
                {'x': 0.5, 'y': -0.2, 'radius': 0.038},
            ],
            'sensor': {'max_range': 2.0, 'variance': 0.0},
        },
    )
