"""
frame_mapping.py - 좌표계 매핑 및 기준 방향 관리

- 축 매핑: 디바이스 축을 소비자(렌더러) 회전 규약으로 재배열
- 화면 방향 보정: 세로/가로 전환 시 Z축 고정 보정 쿼터니언 적용
- 기준 방향: "현재 방향을 정면으로" 리셋 후 상대 방향 보고

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from typing import Optional
from enum import Enum
import logging

from .quaternion import Quaternion

logger = logging.getLogger(__name__)


class AxisMapping(Enum):
    """디바이스 → 소비자 축 매핑"""
    IDENTITY = "identity"
    SWAP_XY = "swap_xy"  # x' = -y, y' = x (Z축 기준 90° 재배열)


VALID_SCREEN_ORIENTATIONS = (0, 90, 180, 270)


class CoordinateFrameMapper:
    """
    고정 좌표계 변환

    필터 결과에 축 재배열과 화면 방향 보정을 차례로 적용합니다.
    보정은 -angle 만큼의 Z축 회전을 오른쪽에 곱합니다.
    """

    def __init__(
        self,
        axis_mapping: str = "identity",
        screen_orientation: int = 0
    ):
        """
        Args:
            axis_mapping: "identity" 또는 "swap_xy"
            screen_orientation: 화면 회전 각도 (0, 90, 180, 270)
        """
        self.axis_mapping = AxisMapping(axis_mapping)
        self._screen_orientation = 0
        self._screen_correction = Quaternion.identity()
        self.set_screen_orientation(screen_orientation)

    def set_screen_orientation(self, angle: int):
        """화면 방향 변경"""
        angle = int(angle) % 360
        if angle not in VALID_SCREEN_ORIENTATIONS:
            raise ValueError(
                f"screen_orientation must be one of {VALID_SCREEN_ORIENTATIONS}, got {angle}"
            )

        self._screen_orientation = angle
        self._screen_correction = Quaternion.from_axis_angle(np.array([0, 0, 1]), -angle)
        logger.debug(f"Screen orientation set to {angle}")

    @property
    def screen_orientation(self) -> int:
        return self._screen_orientation

    def map_axes(self, quat: Quaternion) -> Quaternion:
        """축 재배열 (성분 교환/부호 반전)"""
        if self.axis_mapping == AxisMapping.SWAP_XY:
            return Quaternion(x=-quat.y, y=quat.x, z=quat.z, w=quat.w)
        return quat

    def apply_screen_correction(self, quat: Quaternion) -> Quaternion:
        if self._screen_orientation == 0:
            return quat
        return (quat * self._screen_correction).normalize()


class ReferenceOrientation:
    """
    기준(정면) 방향

    capture() 시점의 방향을 저장하고, 이후 입력에 대해
    relative = inverse(base) * current 를 반환합니다.
    """

    def __init__(self):
        self._base_inverse: Optional[Quaternion] = None

    def capture(self, quat: Quaternion):
        """현재 방향을 기준으로 설정"""
        self._base_inverse = quat.inverse()
        logger.info(f"Reference orientation set: {quat}")

    def apply(self, quat: Quaternion) -> Quaternion:
        if self._base_inverse is None:
            return quat
        return quat.premultiply(self._base_inverse).normalize()

    def clear(self):
        self._base_inverse = None

    @property
    def is_set(self) -> bool:
        return self._base_inverse is not None
