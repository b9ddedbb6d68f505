"""
hmd_orient - 실시간 디바이스 방향 추정 엔진

주요 특징:
- 쿼터니언 도메인 적응형 상보 필터 (SLERP 평활화)
- 자이로/가속도 상보 필터
- 부호 반전 보정 및 리셋/재보정 프로토콜
- 큐 기반 독립 워커

Version: 1.0
Author: FurSys AI Team
"""

__version__ = "1.0.0"
__author__ = "FurSys AI Team"

from .orientation.quaternion import (
    Quaternion,
    RotationOrder,
    slerp
)

from .orientation.complementary_filter import (
    ComplementaryFilter,
    SignFlipGuard
)

from .orientation.inertial_filter import InertialComplementaryFilter

from .orientation.frame_mapping import (
    CoordinateFrameMapper,
    ReferenceOrientation
)

from .main import OrientationEngine, OrientationWorker

__all__ = [
    # Quaternion
    'Quaternion',
    'RotationOrder',
    'slerp',
    # Filters
    'ComplementaryFilter',
    'SignFlipGuard',
    'InertialComplementaryFilter',
    # Frames
    'CoordinateFrameMapper',
    'ReferenceOrientation',
    # Engine
    'OrientationEngine',
    'OrientationWorker',
]
