#!/usr/bin/env python3
"""
Actuation Noise and Wheel Slip Model.

Turns commanded wheel speeds into two wheel trajectories:

- the *true* trajectory, used to advance the simulated ground-truth pose:
  commanded speed plus zero-mean Gaussian noise;
- the *odometric* trajectory, reported by the wheel encoders: the true speed
  scaled by a per-wheel slip factor ``(1 + s)``, ``s ~ U[-slip, slip]``.

Ground truth never sees the slip, so odometry and everything built on it
(dead reckoning, SLAM) drifts away from the truth by a controlled,
reproducible amount.

Notes
-----
An idle wheel (command exactly zero) receives no noise, so a stopped robot
does not creep.
"""

import logging
import math

import numpy as np

from ..errors import ConfigurationError
from ..geometry.se2 import WheelState, almost_equal

logger = logging.getLogger(__name__)


class ActuationModel:
    """
    Noisy, slipping wheel actuation.

    Parameters
    ----------
    input_noise : float, optional
        Variance (rad²/s²) of the Gaussian noise added to each non-zero wheel
        speed command. Default: 0 (noise-free).
    slip_fraction : float, optional
        Half-width of the uniform slip distribution. Default: 0 (no slip).
    rng : numpy.random.Generator or int or None, optional
        Random source owned by the model. An integer seeds a new generator.

    Attributes
    ----------
    true_wheel_speeds : WheelState
        Commanded speeds plus noise (rad/s).
    slip : WheelState
        Slip fractions drawn with the last command.
    true_wheel_angles : WheelState
        Integrated ground-truth wheel angles (rad).
    odometry_wheel_angles : WheelState
        Integrated wheel angles as seen by the encoders (rad).
    """

    def __init__(self, input_noise=0.0, slip_fraction=0.0, rng=None):
        if input_noise < 0.0:
            raise ConfigurationError(f"input_noise must be non-negative, got {input_noise}")
        if slip_fraction < 0.0:
            raise ConfigurationError(f"slip_fraction must be non-negative, got {slip_fraction}")
        self.input_noise = float(input_noise)
        self.slip_fraction = float(slip_fraction)
        if isinstance(rng, np.random.Generator):
            self.rng = rng
        else:
            self.rng = np.random.default_rng(rng)

        self.true_wheel_speeds = WheelState()
        self.slip = WheelState()
        self.true_wheel_angles = WheelState()
        self.odometry_wheel_angles = WheelState()

    def _noisy(self, speed):
        if almost_equal(speed, 0.0) or self.input_noise == 0.0:
            return speed
        return speed + self.rng.normal(0.0, math.sqrt(self.input_noise))

    def set_command(self, wheel_speeds):
        """
        Apply a new wheel speed command (rad/s).

        Draws fresh noise for each non-idle wheel and, when slip is enabled,
        fresh slip fractions for both wheels.
        """
        self.true_wheel_speeds = WheelState(
            self._noisy(wheel_speeds.left), self._noisy(wheel_speeds.right)
        )
        if not almost_equal(self.slip_fraction, 0.0):
            self.slip = WheelState(
                self.rng.uniform(-self.slip_fraction, self.slip_fraction),
                self.rng.uniform(-self.slip_fraction, self.slip_fraction),
            )
        logger.debug(
            "wheel command %s -> true speeds %s, slip %s",
            wheel_speeds,
            self.true_wheel_speeds,
            self.slip,
        )
        return self.true_wheel_speeds

    def integrate(self, dt):
        """
        Advance both wheel trajectories by ``dt`` seconds.

        Returns
        -------
        WheelState
            Change of the true wheel angles, for ground-truth kinematics.
        """
        true_delta = self.true_wheel_speeds * dt
        odometry_delta = WheelState(
            true_delta.left * (1.0 + self.slip.left),
            true_delta.right * (1.0 + self.slip.right),
        )
        self.true_wheel_angles = self.true_wheel_angles + true_delta
        self.odometry_wheel_angles = self.odometry_wheel_angles + odometry_delta
        return true_delta
