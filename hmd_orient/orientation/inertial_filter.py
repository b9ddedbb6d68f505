"""
inertial_filter.py - 자이로 + 가속도 상보 필터

원시 관성 벡터만 있을 때 사용합니다.
- 자이로: 1차 쿼터니언 미분으로 각속도 적분 (고주파, 드리프트 있음)
- 가속도: 중력 방향에서 roll/pitch 추정 (저주파, yaw 관측 불가)
- 혼합: alpha * gyro + (1 - alpha) * accel 성분별 선형 결합 후 정규화

알려진 한계: 선형 가속 중에도 가속도 보정이 그대로 적용됩니다.

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from typing import Optional
import logging

from .quaternion import Quaternion

logger = logging.getLogger(__name__)

# 가속도 크기가 0일 때 대체할 중력 방향
DEFAULT_GRAVITY = np.array([0.0, 0.0, 1.0])


class InertialComplementaryFilter:
    """
    관성 센서 상보 필터

    첫 샘플은 시각 기준만 설정하고 출력하지 않습니다.

    Example:
        >>> f = InertialComplementaryFilter(alpha=0.98)
        >>> f.update(accel, gyro, 0.0)      # None (시각 초기화)
        >>> q = f.update(accel, gyro, 16.0)
    """

    def __init__(
        self,
        alpha: float = 0.98,
        gyro_in_degrees: bool = True,
        max_delta_time: float = 0.1
    ):
        """
        Args:
            alpha: 자이로 가중치 (0-1)
            gyro_in_degrees: 자이로 입력이 deg/s인지
            max_delta_time: 적분 시간 간격 상한 (초)
        """
        if not 0.0 <= alpha <= 1.0:
            raise ValueError(f"alpha must be in [0, 1], got {alpha}")

        self.alpha = alpha
        self.gyro_in_degrees = gyro_in_degrees
        self.max_delta_time = max_delta_time

        self._quat = Quaternion.identity()
        self._previous_timestamp: Optional[float] = None

        logger.debug(f"InertialComplementaryFilter initialized: alpha={alpha}")

    def update(
        self,
        accel: np.ndarray,
        gyro: np.ndarray,
        timestamp: float
    ) -> Optional[Quaternion]:
        """
        관성 샘플로 방향 갱신

        Args:
            accel: 가속도 [ax, ay, az]
            gyro: 각속도 [gx, gy, gz] (deg/s 또는 rad/s)
            timestamp: 샘플 시각 (ms)

        Returns:
            새 방향 쿼터니언, 시각 초기화 또는 dt <= 0 이면 None
        """
        if self._previous_timestamp is None:
            self._previous_timestamp = timestamp
            logger.debug("Inertial clock seeded")
            return None

        dt = (timestamp - self._previous_timestamp) / 1000.0
        if dt <= 0:
            logger.debug(f"Non-positive dt ({dt:.4f}s), sample skipped")
            return None
        dt = min(dt, self.max_delta_time)

        gravity = self._normalize_accel(accel)

        omega = np.asarray(gyro, dtype=np.float64)
        if self.gyro_in_degrees:
            omega = np.deg2rad(omega)

        gyro_quat = self._integrate_gyro(self._quat, omega, dt)
        accel_quat = self._accel_to_quaternion(gravity)

        # 부호가 반대면 선형 결합이 상쇄되므로 같은 반구로 정렬
        if gyro_quat.dot(accel_quat) < 0:
            accel_quat = -accel_quat

        blended = self.alpha * gyro_quat.to_array() + (1 - self.alpha) * accel_quat.to_array()
        self._quat = Quaternion.from_array(blended).normalize()
        self._previous_timestamp = timestamp

        return self._quat

    @staticmethod
    def _normalize_accel(accel: np.ndarray) -> np.ndarray:
        """가속도를 단위 중력 방향으로 정규화"""
        accel = np.asarray(accel, dtype=np.float64)
        norm = np.linalg.norm(accel)
        if norm == 0:
            logger.debug("Zero accelerometer vector, using default gravity")
            return DEFAULT_GRAVITY.copy()
        return accel / norm

    @staticmethod
    def _integrate_gyro(quat: Quaternion, omega: np.ndarray, dt: float) -> Quaternion:
        """
        1차 쿼터니언 미분 적분

        q_dot = 0.5 * q ⊗ (ω, 0)
        q_new = normalize(q + q_dot * dt)
        """
        omega_quat = Quaternion(x=omega[0], y=omega[1], z=omega[2], w=0.0)
        q_dot = (quat * omega_quat).to_array() * 0.5
        return Quaternion.from_array(quat.to_array() + q_dot * dt).normalize()

    @staticmethod
    def _accel_to_quaternion(gravity: np.ndarray) -> Quaternion:
        """중력 방향에서 roll/pitch 쿼터니언 (yaw = 0)"""
        ax, ay, az = gravity

        roll = np.arctan2(ay, az)
        pitch = np.arctan2(-ax, np.sqrt(ay * ay + az * az))

        cr, sr = np.cos(roll / 2), np.sin(roll / 2)
        cp, sp = np.cos(pitch / 2), np.sin(pitch / 2)

        return Quaternion(
            x=float(sr * cp),
            y=float(cr * sp),
            z=float(-sr * sp),
            w=float(cr * cp)
        )

    def reset(self):
        """필터 리셋"""
        self._quat = Quaternion.identity()
        self._previous_timestamp = None
        logger.debug("InertialComplementaryFilter reset")

    @property
    def quaternion(self) -> Quaternion:
        return self._quat

    @property
    def is_initialized(self) -> bool:
        return self._previous_timestamp is not None
