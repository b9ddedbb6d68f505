"""
orientation 모듈 - 방향 추정 및 필터링

주요 기능:
- 쿼터니언 대수 (정규화, 해밀턴 곱, SLERP, 회전 행렬 변환)
- 쿼터니언 도메인 적응형 상보 필터 + 부호 반전 보정
- 자이로/가속도 상보 필터
- 좌표계 매핑 및 기준 방향 리셋
"""

from .quaternion import (
    Quaternion,
    RotationOrder,
    normalize,
    multiply,
    dot,
    slerp,
    to_rotation_matrix,
    from_rotation_matrix
)

from .complementary_filter import (
    ComplementaryFilter,
    ComplementaryFilterState,
    SignFlipGuard
)

from .inertial_filter import InertialComplementaryFilter

from .frame_mapping import (
    AxisMapping,
    CoordinateFrameMapper,
    ReferenceOrientation
)

__all__ = [
    'Quaternion',
    'RotationOrder',
    'normalize',
    'multiply',
    'dot',
    'slerp',
    'to_rotation_matrix',
    'from_rotation_matrix',
    'ComplementaryFilter',
    'ComplementaryFilterState',
    'SignFlipGuard',
    'InertialComplementaryFilter',
    'AxisMapping',
    'CoordinateFrameMapper',
    'ReferenceOrientation',
]
