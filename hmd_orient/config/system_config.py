"""
system_config.py - 시스템 설정 관리

hmd_orient 방향 추정 엔진의 모든 설정을 통합 관리합니다.

Version: 1.0
Author: FurSys AI Team
"""

import yaml
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ComplementaryFilterConfig:
    """쿼터니언 도메인 적응형 상보 필터 설정"""
    slow_coeff: float = 0.98          # 정지에 가까울 때 (안정성)
    fast_coeff: float = 0.85          # 빠른 움직임 감지 시 (반응성)
    movement_threshold: float = 0.05  # 1 - |dot| 기준
    max_delta_time: float = 0.1       # 초, 긴 정지 후 과반응 방지
    nominal_rate: float = 60.0        # Hz, 계수 시간 보정 기준
    flip_guard: bool = True           # 부호 반전 보정


@dataclass
class InertialFilterConfig:
    """자이로 + 가속도 상보 필터 설정"""
    alpha: float = 0.98
    gyro_in_degrees: bool = True      # 자이로 입력 단위 (deg/s)
    max_delta_time: float = 0.1       # 초


@dataclass
class FrameConfig:
    """좌표계 매핑 설정"""
    axis_mapping: str = "identity"    # "identity" or "swap_xy"
    screen_orientation: int = 0       # 0, 90, 180, 270 (도)
    euler_order: str = "ZXY"          # deviceorientation 내재적 회전 순서


@dataclass
class OutputConfig:
    """출력 설정"""
    save_results: bool = True
    output_dir: str = "output"

    # 로깅
    log_level: str = "INFO"


@dataclass
class SystemConfig:
    """hmd_orient 시스템 전체 설정"""
    complementary: ComplementaryFilterConfig = field(default_factory=ComplementaryFilterConfig)
    inertial: InertialFilterConfig = field(default_factory=InertialFilterConfig)
    frame: FrameConfig = field(default_factory=FrameConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def save(self, filepath: str):
        """설정을 YAML 파일로 저장"""
        with open(filepath, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

        logger.info(f"Config saved to {filepath}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'SystemConfig':
        """딕셔너리에서 설정 생성"""
        return cls(
            complementary=ComplementaryFilterConfig(**(d.get('complementary') or {})),
            inertial=InertialFilterConfig(**(d.get('inertial') or {})),
            frame=FrameConfig(**(d.get('frame') or {})),
            output=OutputConfig(**(d.get('output') or {}))
        )


def load_config(filepath: str) -> SystemConfig:
    """
    YAML 파일에서 설정 로드

    Args:
        filepath: 설정 파일 경로

    Returns:
        SystemConfig: 로드된 설정 (파일이 없으면 기본값)
    """
    path = Path(filepath)

    if not path.exists():
        logger.warning(f"Config file not found: {filepath}, using defaults")
        return SystemConfig()

    with open(path, 'r') as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        return SystemConfig()

    return SystemConfig.from_dict(config_dict)


def create_default_config(save_path: Optional[str] = None) -> SystemConfig:
    """
    기본 설정 생성

    Args:
        save_path: 저장 경로 (None이면 저장 안함)

    Returns:
        SystemConfig: 기본 설정
    """
    config = SystemConfig()

    if save_path:
        config.save(save_path)

    return config
