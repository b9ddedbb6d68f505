"""
complementary_filter.py - 쿼터니언 도메인 적응형 상보 필터

플랫폼 센서가 이미 쿼터니언을 제공하거나, deviceorientation 오일러 각도를
쿼터니언으로 변환한 입력을 SLERP로 평활화합니다.

상태 전이:
- 미초기화 → 추적: 첫 update()는 입력을 그대로 저장/반환
- 추적 → 추적: 움직임 크기에 따라 계수 선택 후 시간 보정 SLERP
- reset(): 어느 상태에서든 미초기화로 복귀

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from typing import Optional
from dataclasses import dataclass
import logging

from .quaternion import Quaternion, slerp

logger = logging.getLogger(__name__)


@dataclass
class ComplementaryFilterState:
    """
    필터 상태 스냅샷

    Attributes:
        filtered: 현재 평활화된 추정값
        previous_raw: 마지막 원시 입력
        last_time: 마지막 입력 시각 (ms), 미초기화면 None
        is_first_update: 다음 update()가 초기화 단계인지
    """
    filtered: Quaternion
    previous_raw: Quaternion
    last_time: Optional[float]
    is_first_update: bool

    def to_dict(self) -> dict:
        return {
            'filtered': self.filtered.to_list(),
            'previous_raw': self.previous_raw.to_list(),
            'last_time': self.last_time,
            'is_first_update': self.is_first_update
        }


class ComplementaryFilter:
    """
    적응형 쿼터니언 상보 필터

    움직임이 클 때는 fast_coeff(반응성), 정지에 가까울 때는 slow_coeff(안정성)를
    사용하고, 계수를 coeff^(dt * nominal_rate)로 보정해 샘플링 주기와 무관하게
    60Hz 기준과 같은 강도로 혼합합니다.

    Example:
        >>> f = ComplementaryFilter()
        >>> q = f.update(Quaternion.identity(), 0.0)
        >>> q = f.update(sample_quat, 16.0)
    """

    def __init__(
        self,
        slow_coeff: float = 0.98,
        fast_coeff: float = 0.85,
        movement_threshold: float = 0.05,
        max_delta_time: float = 0.1,
        nominal_rate: float = 60.0
    ):
        """
        Args:
            slow_coeff: 정지 시 필터 계수
            fast_coeff: 빠른 움직임 시 필터 계수
            movement_threshold: 움직임 판단 기준 (1 - |dot|)
            max_delta_time: 시간 간격 상한 (초)
            nominal_rate: 계수 보정 기준 주파수 (Hz)
        """
        for name, coeff in (('slow_coeff', slow_coeff), ('fast_coeff', fast_coeff)):
            if not 0.0 < coeff <= 1.0:
                raise ValueError(f"{name} must be in (0, 1], got {coeff}")

        self.slow_coeff = slow_coeff
        self.fast_coeff = fast_coeff
        self.movement_threshold = movement_threshold
        self.max_delta_time = max_delta_time
        self.nominal_rate = nominal_rate

        self._filtered = Quaternion.identity()
        self._previous_raw = Quaternion.identity()
        self._last_time: Optional[float] = None
        self._is_first_update = True

        logger.debug(
            f"ComplementaryFilter initialized: slow={slow_coeff}, fast={fast_coeff}, "
            f"threshold={movement_threshold}"
        )

    def update(self, quat: Quaternion, timestamp: float) -> Quaternion:
        """
        새 원시 쿼터니언으로 필터 갱신

        Args:
            quat: 원시 입력 쿼터니언
            timestamp: 입력 시각 (ms)

        Returns:
            평활화된 단위 쿼터니언
        """
        quat = quat.normalize()

        if self._is_first_update:
            self._filtered = quat
            self._previous_raw = quat
            self._last_time = timestamp
            self._is_first_update = False
            return quat

        delta_time = self._delta_time(timestamp)

        # 움직임 크기에 따른 계수 선택
        movement = 1.0 - abs(self._previous_raw.dot(quat))
        coeff = self.fast_coeff if movement > self.movement_threshold else self.slow_coeff

        # 샘플링 주기 보정
        adjusted = coeff ** (delta_time * self.nominal_rate)

        self._filtered = slerp(self._filtered, quat, 1.0 - adjusted)
        self._previous_raw = quat
        self._last_time = timestamp

        return self._filtered

    def _delta_time(self, timestamp: float) -> float:
        """경과 시간 (초), [0, max_delta_time] 범위로 제한"""
        delta = (timestamp - self._last_time) / 1000.0
        return float(np.clip(delta, 0.0, self.max_delta_time))

    def reset(self):
        """필터 리셋 (멱등)"""
        self._filtered = Quaternion.identity()
        self._previous_raw = Quaternion.identity()
        self._last_time = None
        self._is_first_update = True
        logger.debug("ComplementaryFilter reset")

    def get_state(self) -> ComplementaryFilterState:
        return ComplementaryFilterState(
            filtered=self._filtered,
            previous_raw=self._previous_raw,
            last_time=self._last_time,
            is_first_update=self._is_first_update
        )

    @property
    def filtered(self) -> Quaternion:
        return self._filtered

    @property
    def is_initialized(self) -> bool:
        return not self._is_first_update


class SignFlipGuard:
    """
    쿼터니언 부호 일관성 유지

    q와 -q는 같은 회전이므로, 직전 처리 결과와의 내적이 음수면
    네 성분을 모두 반전해 180° 점프로 해석되는 것을 막습니다.
    """

    def __init__(self):
        self._last: Optional[Quaternion] = None

    def process(self, quat: Quaternion) -> Quaternion:
        if self._last is not None and quat.dot(self._last) < 0:
            quat = -quat
        self._last = quat
        return quat

    def reset(self):
        self._last = None

    @property
    def last_processed(self) -> Optional[Quaternion]:
        return self._last
