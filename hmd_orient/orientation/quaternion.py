"""
quaternion.py - 쿼터니언 대수 모듈

모든 필터가 공유하는 상태 없는(stateless) 회전 연산:
- 정규화 / 해밀턴 곱 / 내적
- SLERP (최단 경로 + 근접 평행 시 선형 보간)
- 회전 행렬 <-> 쿼터니언 상호 변환
- 오일러 각도 <-> 쿼터니언 (scipy, 회전 순서 지정)

표현 규칙: (x, y, z, w), q와 -q는 같은 회전 (이중 피복)

Version: 1.0
Author: FurSys AI Team
"""

import numpy as np
from scipy.spatial.transform import Rotation
from typing import Union
from dataclasses import dataclass
from enum import Enum
import logging

logger = logging.getLogger(__name__)

# 정규화 하한 (이 이하의 크기는 항등 쿼터니언으로 대체)
NORM_EPSILON = 1e-5

# 이 이상이면 SLERP 대신 선형 보간
SLERP_DOT_THRESHOLD = 0.9995


class RotationOrder(Enum):
    """오일러 각도 회전 순서 (대문자: 내재적, 소문자: 외재적)"""
    ZXY = 'ZXY'  # deviceorientation (alpha=Z, beta=X', gamma=Y'')
    XYZ = 'XYZ'
    YXZ = 'YXZ'
    ZYX = 'ZYX'

    EXTRINSIC_XYZ = 'xyz'
    EXTRINSIC_ZYX = 'zyx'


@dataclass
class Quaternion:
    """
    쿼터니언 (x, y, z, w) - scipy 형식

    표현: q = w + xi + yj + zk
    단위 쿼터니언 조건: |q| = sqrt(x² + y² + z² + w²) = 1
    """
    x: float
    y: float
    z: float
    w: float

    def to_array(self) -> np.ndarray:
        """[x, y, z, w] 형식"""
        return np.array([self.x, self.y, self.z, self.w], dtype=np.float64)

    def to_list(self) -> list:
        return [float(self.x), float(self.y), float(self.z), float(self.w)]

    def normalize(self) -> 'Quaternion':
        """단위 쿼터니언으로 정규화 (크기가 0에 가까우면 항등)"""
        arr = self.to_array()

        # 큰 성분에서 norm이 inf로 넘치지 않도록 최대 성분으로 먼저 축소
        scale = np.max(np.abs(arr))
        if not np.isfinite(scale) or not scale > 0:
            logger.debug(f"Degenerate quaternion (max component={scale:.2e}), using identity")
            return Quaternion.identity()

        scaled = arr / scale
        scaled_norm = np.linalg.norm(scaled)
        norm = scale * scaled_norm
        if not norm > NORM_EPSILON:
            logger.debug(f"Degenerate quaternion (norm={norm:.2e}), using identity")
            return Quaternion.identity()
        return Quaternion.from_array(scaled / scaled_norm)

    def conjugate(self) -> 'Quaternion':
        """켤레 쿼터니언"""
        return Quaternion(x=-self.x, y=-self.y, z=-self.z, w=self.w)

    def inverse(self) -> 'Quaternion':
        """역 쿼터니언 (단위 쿼터니언 기준 켤레)"""
        return self.normalize().conjugate()

    @property
    def norm(self) -> float:
        return float(np.linalg.norm(self.to_array()))

    @property
    def is_unit(self) -> bool:
        return abs(self.norm - 1.0) < 1e-6

    def __mul__(self, other: 'Quaternion') -> 'Quaternion':
        """해밀턴 곱 (self ⊗ other)"""
        w1, x1, y1, z1 = self.w, self.x, self.y, self.z
        w2, x2, y2, z2 = other.w, other.x, other.y, other.z

        return Quaternion(
            x=w1*x2 + x1*w2 + y1*z2 - z1*y2,
            y=w1*y2 - x1*z2 + y1*w2 + z1*x2,
            z=w1*z2 + x1*y2 - y1*x2 + z1*w2,
            w=w1*w2 - x1*x2 - y1*y2 - z1*z2
        )

    def premultiply(self, other: 'Quaternion') -> 'Quaternion':
        """other ⊗ self"""
        return other * self

    def __neg__(self) -> 'Quaternion':
        return Quaternion(x=-self.x, y=-self.y, z=-self.z, w=-self.w)

    def dot(self, other: 'Quaternion') -> float:
        return float(np.dot(self.to_array(), other.to_array()))

    def angle_to(self, other: 'Quaternion') -> float:
        """다른 쿼터니언까지의 회전 각도 (도)"""
        d = np.clip(abs(self.dot(other)), 0.0, 1.0)
        return float(np.rad2deg(2 * np.arccos(d)))

    def is_close(self, other: 'Quaternion', tol: float = 1e-6) -> bool:
        """같은 회전인지 (부호 무관)"""
        return 1.0 - abs(self.dot(other)) < tol

    def to_rotation_matrix(self) -> np.ndarray:
        return to_rotation_matrix(self)

    def to_homogeneous_matrix(self) -> np.ndarray:
        """4x4 동차 변환 행렬 (이동 없음)"""
        m = np.eye(4)
        m[:3, :3] = to_rotation_matrix(self)
        return m

    def to_euler(self, order: Union[RotationOrder, str] = RotationOrder.ZXY,
                 degrees: bool = False) -> np.ndarray:
        """오일러 각도로 변환 (order의 축 순서대로)"""
        order = _as_order(order)
        rot = Rotation.from_quat(self.normalize().to_array())
        return rot.as_euler(order.value, degrees=degrees)

    def __repr__(self) -> str:
        return f"Quaternion(x={self.x:.4f}, y={self.y:.4f}, z={self.z:.4f}, w={self.w:.4f})"

    @classmethod
    def identity(cls) -> 'Quaternion':
        return cls(x=0.0, y=0.0, z=0.0, w=1.0)

    @classmethod
    def from_array(cls, arr) -> 'Quaternion':
        """[x, y, z, w] 배열에서 생성"""
        return cls(x=float(arr[0]), y=float(arr[1]), z=float(arr[2]), w=float(arr[3]))

    @classmethod
    def from_axis_angle(cls, axis: np.ndarray, angle_deg: float) -> 'Quaternion':
        """축-각도에서 생성"""
        axis = np.asarray(axis, dtype=np.float64)
        axis = axis / np.linalg.norm(axis)
        half = np.deg2rad(angle_deg) / 2
        sin_a = np.sin(half)
        return cls(
            x=float(axis[0] * sin_a),
            y=float(axis[1] * sin_a),
            z=float(axis[2] * sin_a),
            w=float(np.cos(half))
        )

    @classmethod
    def from_euler(
        cls,
        alpha: float,
        beta: float,
        gamma: float,
        order: Union[RotationOrder, str] = RotationOrder.ZXY
    ) -> 'Quaternion':
        """
        오일러 각도(라디안)에서 생성

        각도는 order 문자열의 축 순서대로 적용됩니다.
        기본 ZXY는 deviceorientation 이벤트 규약 (alpha: Z, beta: X, gamma: Y).
        """
        order = _as_order(order)
        rot = Rotation.from_euler(order.value, [alpha, beta, gamma])
        return cls.from_array(rot.as_quat())

    @classmethod
    def from_rotation_matrix(cls, m: np.ndarray) -> 'Quaternion':
        return from_rotation_matrix(m)


def _as_order(order: Union[RotationOrder, str]) -> RotationOrder:
    if isinstance(order, RotationOrder):
        return order
    return RotationOrder(order)


def normalize(q: Quaternion) -> Quaternion:
    return q.normalize()


def multiply(q1: Quaternion, q2: Quaternion) -> Quaternion:
    """해밀턴 곱 q1 ⊗ q2 (비가환)"""
    return q1 * q2


def dot(q1: Quaternion, q2: Quaternion) -> float:
    return q1.dot(q2)


def slerp(q1: Quaternion, q2: Quaternion, t: float) -> Quaternion:
    """
    구면 선형 보간 (SLERP)

    - dot < 0 이면 q2 부호를 뒤집어 최단 경로로 보간
    - dot > 0.9995 이면 선형 보간 후 정규화 (sin(θ) ≈ 0 나눗셈 방지)

    Args:
        q1: 시작 쿼터니언
        q2: 끝 쿼터니언
        t: 보간 파라미터 [0, 1]

    Returns:
        보간된 단위 쿼터니언 (t=0 → q1, t=1 → 정렬된 q2)
    """
    t = float(np.clip(t, 0.0, 1.0))
    a = q1.to_array()
    b = q2.to_array()

    d = float(np.dot(a, b))
    if d < 0.0:
        b = -b
        d = -d

    if d > SLERP_DOT_THRESHOLD:
        return Quaternion.from_array(a + t * (b - a)).normalize()

    theta0 = np.arccos(d)
    sin_theta0 = np.sin(theta0)
    s0 = np.sin((1.0 - t) * theta0) / sin_theta0
    s1 = np.sin(t * theta0) / sin_theta0

    return Quaternion.from_array(s0 * a + s1 * b).normalize()


def to_rotation_matrix(q: Quaternion) -> np.ndarray:
    """쿼터니언에서 3x3 회전 행렬 (열 벡터에 작용)"""
    q = q.normalize()
    x, y, z, w = q.x, q.y, q.z, q.w

    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    xw, yw, zw = x * w, y * w, z * w

    return np.array([
        [1 - 2 * (yy + zz), 2 * (xy - zw), 2 * (xz + yw)],
        [2 * (xy + zw), 1 - 2 * (xx + zz), 2 * (yz - xw)],
        [2 * (xz - yw), 2 * (yz + xw), 1 - 2 * (xx + yy)]
    ])


def from_rotation_matrix(m: np.ndarray) -> Quaternion:
    """
    3x3 회전 행렬에서 쿼터니언으로 변환

    대각 성분의 부호 패턴으로 가장 큰 성분을 고르는 4-분기 방식.
    각 분기는 스케일이 0에 가까우면 항등 쿼터니언을 반환합니다.
    """
    m = np.asarray(m, dtype=np.float64)
    if m.shape == (4, 4):
        m = m[:3, :3]
    if m.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got {m.shape}")

    m00, m01, m02 = m[0]
    m10, m11, m12 = m[1]
    m20, m21, m22 = m[2]

    if m22 < 0:
        if m00 > m11:
            # x 우세
            t = 1 + m00 - m11 - m22
            arr = [t, m01 + m10, m02 + m20, m21 - m12]
        else:
            # y 우세
            t = 1 - m00 + m11 - m22
            arr = [m01 + m10, t, m12 + m21, m02 - m20]
    else:
        if m00 < -m11:
            # z 우세
            t = 1 - m00 - m11 + m22
            arr = [m02 + m20, m12 + m21, t, m10 - m01]
        else:
            # w 우세
            t = 1 + m00 + m11 + m22
            arr = [m21 - m12, m02 - m20, m10 - m01, t]

    if t < NORM_EPSILON:
        logger.debug(f"Degenerate rotation matrix (t={t:.2e}), using identity")
        return Quaternion.identity()

    scale = 0.5 / np.sqrt(t)
    return Quaternion.from_array(np.array(arr) * scale).normalize()
