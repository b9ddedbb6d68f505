"""
input 모듈 - 샘플 입력 처리

실시간 메시지 검증/변환 및 기록된 샘플 재생을 지원합니다.
"""

from .samples import (
    SampleKind,
    QuaternionSample,
    EulerSample,
    InertialSample,
    ResetCommand,
    RecenterCommand,
    ScreenOrientationCommand,
    MotionSample,
    parse_message
)
from .sample_loader import SampleLoader

__all__ = [
    'SampleKind',
    'QuaternionSample',
    'EulerSample',
    'InertialSample',
    'ResetCommand',
    'RecenterCommand',
    'ScreenOrientationCommand',
    'MotionSample',
    'parse_message',
    'SampleLoader',
]
