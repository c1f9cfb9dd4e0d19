import numpy as np
import pytest

from diffbot_slam.errors import ConfigurationError
from diffbot_slam.geometry.se2 import WheelState
from diffbot_slam.simulation.actuation import ActuationModel


def test_noise_free_by_default():
    model = ActuationModel()
    speeds = model.set_command(WheelState(1.0, -2.0))
    assert speeds == WheelState(1.0, -2.0)
    assert model.slip == WheelState()


def test_idle_wheel_receives_no_noise():
    model = ActuationModel(input_noise=0.1, rng=3)
    for _ in range(20):
        speeds = model.set_command(WheelState(0.0, 2.0))
        assert speeds.left == 0.0
        assert speeds.right != 2.0


def test_seeded_models_are_reproducible():
    a = ActuationModel(input_noise=0.05, slip_fraction=0.1, rng=7)
    b = ActuationModel(input_noise=0.05, slip_fraction=0.1, rng=np.random.default_rng(7))
    for command in (WheelState(1.0, 1.0), WheelState(-0.5, 2.0)):
        assert a.set_command(command) == b.set_command(command)
        assert a.slip == b.slip
        a.integrate(0.1)
        b.integrate(0.1)
    assert a.odometry_wheel_angles == b.odometry_wheel_angles


def test_slip_only_affects_odometry():
    model = ActuationModel(slip_fraction=0.1, rng=0)
    model.set_command(WheelState(1.0, 1.0))
    true_delta = model.integrate(1.0)

    assert true_delta == WheelState(1.0, 1.0)
    assert model.true_wheel_angles == WheelState(1.0, 1.0)
    assert -0.1 <= model.slip.left <= 0.1
    assert -0.1 <= model.slip.right <= 0.1
    assert model.odometry_wheel_angles.left == pytest.approx(1.0 + model.slip.left)
    assert model.odometry_wheel_angles.right == pytest.approx(1.0 + model.slip.right)


def test_slip_is_redrawn_per_command():
    model = ActuationModel(slip_fraction=0.2, rng=11)
    model.set_command(WheelState(1.0, 1.0))
    first = model.slip
    model.set_command(WheelState(1.0, 1.0))
    assert model.slip != first


def test_angles_accumulate_over_ticks():
    model = ActuationModel()
    model.set_command(WheelState(2.0, 4.0))
    for _ in range(10):
        model.integrate(0.1)
    assert model.true_wheel_angles.left == pytest.approx(2.0)
    assert model.true_wheel_angles.right == pytest.approx(4.0)
    assert model.odometry_wheel_angles == model.true_wheel_angles


@pytest.mark.parametrize("noise, slip", [(-0.1, 0.0), (0.0, -0.5)])
def test_negative_parameters_are_rejected(noise, slip):
    with pytest.raises(ConfigurationError):
        ActuationModel(input_noise=noise, slip_fraction=slip)
