"""
samples.py - 모션 샘플 수집 및 검증

입력 메시지(dict)를 필드 존재 여부로 판별해 태그된 샘플 타입으로 변환합니다.

지원 메시지:
- {'reset': True}
- {'recenter': True}
- {'screen_orientation': 90}
- {'quaternion': [x, y, z, w]}
- {'accelerometer': {x, y, z}, 'gyroscope': {x, y, z}, 'timestamp': ms}
- {'alpha': a, 'beta': b, 'gamma': g}  (라디안)

잘못된 메시지는 ValueError를 발생시킵니다.

Version: 1.0
Author: FurSys AI Team
"""

import math
import time
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union
import logging

from ..orientation.quaternion import Quaternion, RotationOrder

logger = logging.getLogger(__name__)


class SampleKind(Enum):
    """샘플 종류"""
    QUATERNION = "quaternion"
    EULER = "euler"
    INERTIAL = "inertial"
    RESET = "reset"
    RECENTER = "recenter"
    SCREEN_ORIENTATION = "screen_orientation"


@dataclass
class QuaternionSample:
    """플랫폼 센서 쿼터니언"""
    quaternion: Quaternion
    timestamp: float
    kind: SampleKind = SampleKind.QUATERNION


@dataclass
class EulerSample:
    """deviceorientation 오일러 각도 (라디안)"""
    alpha: float
    beta: float
    gamma: float
    timestamp: float
    order: RotationOrder = RotationOrder.ZXY
    kind: SampleKind = SampleKind.EULER

    def to_quaternion(self) -> Quaternion:
        return Quaternion.from_euler(self.alpha, self.beta, self.gamma, self.order)


@dataclass
class InertialSample:
    """가속도 + 자이로 원시 벡터"""
    accel: np.ndarray
    gyro: np.ndarray
    timestamp: float
    kind: SampleKind = SampleKind.INERTIAL


@dataclass
class ResetCommand:
    kind: SampleKind = SampleKind.RESET


@dataclass
class RecenterCommand:
    kind: SampleKind = SampleKind.RECENTER


@dataclass
class ScreenOrientationCommand:
    angle: int
    kind: SampleKind = SampleKind.SCREEN_ORIENTATION


MotionSample = Union[
    QuaternionSample,
    EulerSample,
    InertialSample,
    ResetCommand,
    RecenterCommand,
    ScreenOrientationCommand
]


def default_clock() -> float:
    """단조 증가 시각 (ms)"""
    return time.monotonic() * 1000.0


def parse_message(
    message: Dict[str, Any],
    clock: Callable[[], float] = default_clock,
    euler_order: RotationOrder = RotationOrder.ZXY
) -> MotionSample:
    """
    입력 메시지를 샘플 타입으로 변환

    Args:
        message: 입력 메시지
        clock: 타임스탬프가 없을 때 사용할 시계 (ms)
        euler_order: 오일러 샘플의 회전 순서

    Returns:
        MotionSample

    Raises:
        ValueError: 형식/개수/필드 오류
    """
    if not isinstance(message, dict):
        raise ValueError(f"Message must be a dict, got {type(message).__name__}")

    if message.get('reset'):
        return ResetCommand()

    if message.get('recenter'):
        return RecenterCommand()

    if 'screen_orientation' in message:
        angle = _to_float(message['screen_orientation'], 'screen_orientation')
        if not angle.is_integer():
            raise ValueError(f"screen_orientation must be a whole number of degrees, got {angle}")
        return ScreenOrientationCommand(angle=int(angle))

    timestamp = _timestamp(message, clock)

    if 'quaternion' in message:
        values = _to_vector(message['quaternion'], 'quaternion', 4)
        return QuaternionSample(quaternion=Quaternion.from_array(values), timestamp=timestamp)

    if 'accelerometer' in message or 'gyroscope' in message:
        if message.get('accelerometer') is None or message.get('gyroscope') is None:
            raise ValueError("Inertial sample requires both accelerometer and gyroscope")
        return InertialSample(
            accel=_to_vector(message['accelerometer'], 'accelerometer', 3),
            gyro=_to_vector(message['gyroscope'], 'gyroscope', 3),
            timestamp=timestamp
        )

    if any(k in message for k in ('alpha', 'beta', 'gamma')):
        # 개별 각도가 None이면 0으로 처리 (deviceorientation 규약)
        angles = [
            0.0 if message.get(k) is None else _to_float(message[k], k)
            for k in ('alpha', 'beta', 'gamma')
        ]
        return EulerSample(
            alpha=angles[0],
            beta=angles[1],
            gamma=angles[2],
            timestamp=timestamp,
            order=RotationOrder(message.get('order', euler_order.value))
        )

    raise ValueError(f"Unrecognized message fields: {sorted(message.keys())}")


def _timestamp(message: Dict[str, Any], clock: Callable[[], float]) -> float:
    if message.get('timestamp') is None:
        return float(clock())
    return _to_float(message['timestamp'], 'timestamp')


def _to_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got bool")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(result):
        raise ValueError(f"{name} must be finite, got {result}")
    return result


def _to_vector(value: Any, name: str, size: int) -> np.ndarray:
    """{x, y, z[, w]} 매핑 또는 시퀀스를 배열로 변환"""
    keys = ('x', 'y', 'z', 'w')[:size]

    if isinstance(value, dict):
        missing = [k for k in keys if value.get(k) is None]
        if missing:
            raise ValueError(f"{name} missing fields: {missing}")
        items = [value[k] for k in keys]
    elif isinstance(value, (list, tuple, np.ndarray)):
        if len(value) != size:
            raise ValueError(f"{name} must have {size} components, got {len(value)}")
        items = list(value)
    else:
        raise ValueError(f"{name} must be a sequence or mapping, got {type(value).__name__}")

    return np.array([_to_float(v, name) for v in items], dtype=np.float64)
