#!/usr/bin/env python3
"""
Extended Kalman Filter SLAM with externally supplied landmark identities.

This module implements EKF-SLAM for a differential-drive robot observing point
landmarks with a range-bearing sensor. Landmark identities come from the
sensing layer; the filter only decides whether an identity is new (and must be
added to the map) or already known (and is a re-observation).

Mathematical Foundation
-----------------------
The filter keeps a Gaussian over the joint state of robot pose and map:

    Ξ = [θ, x, y, m_{1,x}, m_{1,y}, ..., m_{N,x}, m_{N,y}]^T

with dimension 3 + 2N, where landmarks appear in the order they were first
observed. The covariance has the block structure

    Σ = [ Σ_qq  Σ_qm ]
        [ Σ_mq  Σ_mm ]

Algorithm Steps
---------------
1. Prediction (odometry-driven):
   - Move the pose with the body displacement twist (unicycle arc model)
   - Landmarks are static
   - Σ ← A Σ Aᵀ + Q, with Q acting on the pose block only

2. State Augmentation:
   - An unseen landmark id is placed at the position implied by the current
     pose estimate and the measurement
   - Its covariance block is large and uncorrelated with the rest of the state

3. Correction (observation-driven), for each measurement in order:
   - Expected measurement ẑ = h(Ξ)
   - Jacobian H (2 × |Ξ|), nonzero on the pose and the landmark block only
   - K = Σ Hᵀ (H Σ Hᵀ + R)⁻¹
   - Ξ ← Ξ + K (z − ẑ), bearing residual wrapped into (-π, π]
   - Σ ← (I − K H) Σ

Zero-initialized cross-covariance for a new landmark is an approximation: the
landmark position was derived from the pose estimate and is therefore
correlated with it. The filter accepts this simplification.

References
----------
.. [1] Thrun, S., Burgard, W., & Fox, D. (2005). Probabilistic Robotics.
       Chapter 10: SLAM with Extended Kalman Filters.
.. [2] Smith, R., Self, M., & Cheeseman, P. (1990). Estimating uncertain
       spatial relationships in robotics. Autonomous Robot Vehicles.

Examples
--------
>>> from diffbot_slam.slam.ekf_slam import ExtendedKalmanFilterSLAM
>>> from diffbot_slam.slam.landmark import LandmarkMeasurement
>>> from diffbot_slam.geometry.se2 import Twist2D
>>>
>>> ekf = ExtendedKalmanFilterSLAM(process_noise=np.diag([1e-3, 1e-3, 1e-3]))
>>> ekf.predict(Twist2D(thetadot=0.0, xdot=0.1))
>>> ekf.correct([LandmarkMeasurement(1.0, 0.0, 5)])
>>> ekf.map_estimate()
{5: (1.1, 0.0)}
"""

import logging

import numpy as np

from ..geometry.se2 import Pose2D, almost_equal, normalize_angle
from ..kinematics.diff_drive import ensure_nonholonomic

logger = logging.getLogger(__name__)

POSE_DIM = 3
LANDMARK_DIM = 2

# innovation covariances above this condition number are treated as singular
MAX_INNOVATION_CONDITION = 1e12


class ExtendedKalmanFilterSLAM:
    """
    EKF-SLAM estimator over robot pose and a growing landmark map.

    The state vector grows by two entries the first time each landmark id is
    observed and never shrinks. Landmark blocks are located through
    ``landmark_indexes`` (id → offset of the x component in the state vector),
    so offsets stay valid when the arrays are reallocated.

    Parameters
    ----------
    initial_pose : Pose2D, optional
        Starting pose estimate. Default: origin.
    initial_pose_covariance : ndarray of shape (3, 3), optional
        Covariance of the starting pose (order θ, x, y). Default: zeros,
        meaning the starting pose is known.
    process_noise : ndarray of shape (3, 3), optional
        Q, added to the pose block at every prediction. Default: zeros.
    measurement_noise : ndarray of shape (2, 2), optional
        R, range/bearing measurement covariance.
        Default: diag([0.01, 0.01]).
    landmark_variance : float, optional
        Variance placed on both coordinates of a newly added landmark.
        Default: 1e6.

    Attributes
    ----------
    state : ndarray of shape (3 + 2N,)
        Current joint state Ξ = [θ, x, y, m_1x, m_1y, ...].
    sigma : ndarray of shape (3 + 2N, 3 + 2N)
        Current joint covariance.
    landmark_indexes : dict
        Landmark id → offset of its x coordinate in ``state``, in
        first-observation order.
    rejected_measurements : int
        Number of measurements discarded as numerically degenerate.

    Notes
    -----
    Numerical safeguards, none of which raise:
    - Prediction with ``|θ̇| ≈ 0`` uses the straight-line model, never
      dividing by the angular displacement.
    - A measurement with non-finite values, a landmark predicted on top of
      the robot, a singular or ill-conditioned innovation covariance or a
      non-finite posterior is rejected with a warning and leaves Ξ and Σ as
      the update found them (a landmark it initialized stays in the map).
    """

    def __init__(
        self,
        initial_pose=None,
        initial_pose_covariance=None,
        process_noise=None,
        measurement_noise=None,
        landmark_variance=1e6,
    ):
        pose = Pose2D() if initial_pose is None else initial_pose
        self.state = np.array([pose.theta, pose.x, pose.y], dtype=float)

        if initial_pose_covariance is None:
            self.sigma = np.zeros((POSE_DIM, POSE_DIM))
        else:
            self.sigma = np.array(initial_pose_covariance, dtype=float).reshape(POSE_DIM, POSE_DIM)

        # Process noise covariance (pose block only)
        if process_noise is None:
            self.Q = np.zeros((POSE_DIM, POSE_DIM))
        else:
            self.Q = np.array(process_noise, dtype=float).reshape(POSE_DIM, POSE_DIM)
        # Measurement noise covariance (range, bearing)
        if measurement_noise is None:
            self.R = np.diag([0.01, 0.01])
        else:
            self.R = np.array(measurement_noise, dtype=float).reshape(LANDMARK_DIM, LANDMARK_DIM)

        self.landmark_variance = float(landmark_variance)
        self.landmark_indexes = {}
        self.rejected_measurements = 0

    @property
    def dimension(self):
        return self.state.shape[0]

    @property
    def landmark_ids(self):
        return list(self.landmark_indexes)

    @property
    def covariance(self):
        """Copy of the full joint covariance Σ."""
        return self.sigma.copy()

    def predict(self, twist):
        """
        EKF prediction step driven by odometry.

        Parameters
        ----------
        twist : Twist2D
            Body displacement since the previous prediction, i.e. the body
            twist integrated over the step: ``thetadot`` (rad) and ``xdot``
            (m). ``ydot`` must be zero.

        Mathematical Model
        ------------------
        Straight line (``θ̇ ≈ 0``):
            θ' = θ
            x' = x + v cos θ
            y' = y + v sin θ

        Arc of constant curvature:
            θ' = θ + ω
            x' = x − (v/ω) sin θ + (v/ω) sin(θ + ω)
            y' = y + (v/ω) cos θ − (v/ω) cos(θ + ω)

        Jacobian with respect to the pose (θ, x, y):
            A_q = I_3 + [[0, 0, 0],
                         [∂x'/∂θ, 0, 0],
                         [∂y'/∂θ, 0, 0]]

        and A = blockdiag(A_q, I_2N), so landmark rows are untouched.

        Covariance update:
            Σ ← A Σ Aᵀ + Q̄,   Q̄ = blockdiag(Q, 0_2N)

        Raises
        ------
        NonHolonomicTwistError
            If the twist has a lateral component.
        """
        ensure_nonholonomic(twist)

        # ------------------ Step 1: Mean update ---------------------#
        theta_t = self.state[0]
        v = twist.xdot
        w = twist.thetadot
        A_q = np.identity(POSE_DIM)
        if almost_equal(w, 0.0):
            self.state[1] += v * np.cos(theta_t)
            self.state[2] += v * np.sin(theta_t)
            A_q[1][0] = -v * np.sin(theta_t)
            A_q[2][0] = v * np.cos(theta_t)
        else:
            ratio = v / w
            self.state[0] = normalize_angle(theta_t + w)
            self.state[1] += -ratio * np.sin(theta_t) + ratio * np.sin(theta_t + w)
            self.state[2] += ratio * np.cos(theta_t) - ratio * np.cos(theta_t + w)
            A_q[1][0] = -ratio * np.cos(theta_t) + ratio * np.cos(theta_t + w)
            A_q[2][0] = -ratio * np.sin(theta_t) + ratio * np.sin(theta_t + w)

        # ------ Step 2: Embed pose Jacobian in full state Jacobian ------#
        A = np.identity(self.dimension)
        A[:POSE_DIM, :POSE_DIM] = A_q

        # ---------------- Step 3: Covariance update ------------------#
        self.sigma = A.dot(self.sigma).dot(A.T)
        self.sigma[:POSE_DIM, :POSE_DIM] += self.Q

    def add_landmark(self, measurement):
        """
        Add a landmark seen for the first time to the state and covariance.

        The landmark is placed at

            m_x = x + r cos(φ + θ)
            m_y = y + r sin(φ + θ)

        and its 2×2 covariance block is ``landmark_variance · I`` with zero
        cross-covariance to the rest of the state.

        Returns
        -------
        int
            Offset of the landmark's x coordinate in the state vector.
        """
        theta_t, x_t, y_t = self.state[:POSE_DIM]
        bearing = normalize_angle(measurement.phi + theta_t)
        x_l = x_t + measurement.r * np.cos(bearing)
        y_l = y_t + measurement.r * np.sin(bearing)

        index = self.dimension
        self.state = np.append(self.state, [x_l, y_l])

        sigma = np.zeros((index + LANDMARK_DIM, index + LANDMARK_DIM))
        sigma[:index, :index] = self.sigma
        sigma[index:, index:] = self.landmark_variance * np.identity(LANDMARK_DIM)
        self.sigma = sigma

        self.landmark_indexes[measurement.landmark_id] = index
        logger.info(
            "Initialized landmark %s at (%.3f, %.3f), state dimension %d",
            measurement.landmark_id,
            x_l,
            y_l,
            self.dimension,
        )
        return index

    def expected_measurement(self, landmark_id):
        """
        Range and bearing of a known landmark from the current pose estimate.

        Returns
        -------
        ndarray of shape (2,)
            ``[r̂, φ̂]`` with φ̂ normalized.
        """
        index = self.landmark_indexes[landmark_id]
        theta_t, x_t, y_t = self.state[:POSE_DIM]
        delta_x = self.state[index] - x_t
        delta_y = self.state[index + 1] - y_t
        return np.array(
            [np.hypot(delta_x, delta_y), normalize_angle(np.arctan2(delta_y, delta_x) - theta_t)]
        )

    def measurement_jacobian(self, landmark_id):
        """
        Jacobian H of the range-bearing model at the current state.

        With δx = m_x − x, δy = m_y − y and q = δx² + δy², the nonzero
        columns are (θ, x, y) and (m_x, m_y) of the landmark:

                θ      x        y       m_x      m_y
            [  0   −δx/√q   −δy/√q    δx/√q    δy/√q ]
            [ −1    δy/q    −δx/q    −δy/q     δx/q  ]

        Returns
        -------
        ndarray of shape (2, 3 + 2N), or None when the landmark estimate
        coincides with the robot position (q ≈ 0).
        """
        index = self.landmark_indexes[landmark_id]
        _, x_t, y_t = self.state[:POSE_DIM]
        delta_x = self.state[index] - x_t
        delta_y = self.state[index + 1] - y_t
        q = delta_x**2 + delta_y**2
        if almost_equal(q, 0.0):
            return None
        sqrt_q = np.sqrt(q)

        H = np.zeros((LANDMARK_DIM, self.dimension))
        H[0][1] = -delta_x / sqrt_q
        H[0][2] = -delta_y / sqrt_q
        H[0][index] = delta_x / sqrt_q
        H[0][index + 1] = delta_y / sqrt_q
        H[1][0] = -1.0
        H[1][1] = delta_y / q
        H[1][2] = -delta_x / q
        H[1][index] = -delta_y / q
        H[1][index + 1] = delta_x / q
        return H

    def correct(self, measurements):
        """
        EKF correction with a batch of landmark measurements.

        Measurements are processed one at a time in the given order. An id
        repeated within the batch is initialized by its first occurrence and
        treated as a re-observation afterwards.

        Parameters
        ----------
        measurements : iterable of LandmarkMeasurement

        Returns
        -------
        int
            Number of measurements that were applied.
        """
        applied = 0
        for measurement in measurements:
            if self.update(measurement):
                applied += 1
        return applied

    def update(self, measurement):
        """
        Apply a single landmark measurement.

        Returns
        -------
        bool
            True when the measurement changed the estimate, False when it was
            rejected as degenerate.
        """
        if not measurement.is_finite():
            return self._reject(measurement, "non-finite range or bearing")
        if measurement.r <= 0.0 or almost_equal(measurement.r, 0.0):
            return self._reject(measurement, "non-positive range")

        # ------------- Step 0: Association / initialization ------------#
        if measurement.landmark_id not in self.landmark_indexes:
            self.add_landmark(measurement)

        # ---------------- Step 1: Expected measurement -----------------#
        z_hat = self.expected_measurement(measurement.landmark_id)

        # ------ Step 2: Linearize measurement model by Jacobian ------#
        H = self.measurement_jacobian(measurement.landmark_id)
        if H is None:
            return self._reject(measurement, "landmark estimate coincides with robot")

        # ---------------- Step 3: Kalman gain ------------------------#
        S_t = H.dot(self.sigma).dot(H.T) + self.R
        condition = np.linalg.cond(S_t)
        if not np.isfinite(condition) or condition > MAX_INNOVATION_CONDITION:
            return self._reject(measurement, "singular innovation covariance")
        try:
            K = self.sigma.dot(H.T).dot(np.linalg.inv(S_t))
        except np.linalg.LinAlgError:
            return self._reject(measurement, "singular innovation covariance")

        # ---------------- Step 4: Innovation --------------------------#
        innovation = measurement.as_array() - z_hat
        innovation[1] = normalize_angle(innovation[1])

        # ---------------- Step 5: Posterior update -------------------#
        new_state = self.state + K.dot(innovation)
        new_sigma = (np.identity(self.dimension) - K.dot(H)).dot(self.sigma)
        new_sigma = 0.5 * (new_sigma + new_sigma.T)
        if not (np.all(np.isfinite(new_state)) and np.all(np.isfinite(new_sigma))):
            return self._reject(measurement, "non-finite posterior")

        new_state[0] = normalize_angle(new_state[0])
        self.state = new_state
        self.sigma = new_sigma
        logger.debug(
            "Landmark %s innovation (%.4f, %.4f)",
            measurement.landmark_id,
            innovation[0],
            innovation[1],
        )
        return True

    def _reject(self, measurement, reason):
        self.rejected_measurements += 1
        logger.warning("Rejected measurement of landmark %s: %s", measurement.landmark_id, reason)
        return False

    def pose_estimate(self):
        """Current robot pose estimate."""
        return Pose2D(self.state[1], self.state[2], self.state[0])

    def map_estimate(self):
        """
        Current landmark position estimates.

        Returns
        -------
        dict
            Landmark id → (x, y), in first-observation order.
        """
        return {
            landmark_id: (float(self.state[index]), float(self.state[index + 1]))
            for landmark_id, index in self.landmark_indexes.items()
        }

    def state_estimate(self):
        """Copy of the full joint state Ξ."""
        return self.state.copy()

    def landmark_covariance(self, landmark_id):
        """2×2 covariance block of one landmark."""
        index = self.landmark_indexes[landmark_id]
        return self.sigma[index : index + LANDMARK_DIM, index : index + LANDMARK_DIM].copy()

    def pose_covariance(self):
        """3×3 covariance block of the pose (order θ, x, y)."""
        return self.sigma[:POSE_DIM, :POSE_DIM].copy()
