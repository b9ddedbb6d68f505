"""
sample_loader.py - 기록된 모션 샘플 로더

CSV로 기록된 센서 샘플을 엔진 입력 메시지로 재생합니다.

CSV 형식 (type 별 사용 컬럼):
- quaternion: timestamp, x, y, z, w
- euler:      timestamp, alpha, beta, gamma (라디안)
- inertial:   timestamp, ax, ay, az, gx, gy, gz
- reset / recenter: 추가 컬럼 없음

Version: 1.0
Author: FurSys AI Team
"""

import pandas as pd
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
import logging

logger = logging.getLogger(__name__)


class SampleLoader:
    """
    CSV 샘플 기록 로더

    Example:
        >>> loader = SampleLoader("recording.csv")
        >>> for message in loader:
        ...     engine.handle(message)
    """

    def __init__(self, filepath: str):
        self.filepath = Path(filepath)

        if not self.filepath.exists():
            raise FileNotFoundError(f"Sample file not found: {filepath}")

        self.df = pd.read_csv(self.filepath)

        if 'type' not in self.df.columns:
            raise ValueError(f"Sample file has no 'type' column: {filepath}")

        self.df['type'] = self.df['type'].astype(str).str.strip().str.lower()

        logger.info(f"SampleLoader: {len(self.df)} samples from {self.filepath.name}")

    def __len__(self) -> int:
        return len(self.df)

    def __getitem__(self, idx: int) -> Dict[str, Any]:
        if idx < 0 or idx >= len(self.df):
            raise IndexError(f"Sample index {idx} out of range")
        return self._row_to_message(self.df.iloc[idx])

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        for _, row in self.df.iterrows():
            yield self._row_to_message(row)

    @property
    def type_counts(self) -> Dict[str, int]:
        """종류별 샘플 수"""
        return self.df['type'].value_counts().to_dict()

    def _row_to_message(self, row: pd.Series) -> Dict[str, Any]:
        """CSV 행을 입력 메시지로 변환 (누락값은 None으로 남겨 검증 단계에서 처리)"""
        kind = row['type']
        timestamp = self._get(row, 'timestamp')

        if kind in ('reset', 'recenter'):
            return {kind: True}

        if kind == 'quaternion':
            message = {'quaternion': [self._get(row, k) for k in ('x', 'y', 'z', 'w')]}
        elif kind == 'euler':
            message = {k: self._get(row, k) for k in ('alpha', 'beta', 'gamma')}
        elif kind == 'inertial':
            message = {
                'accelerometer': {a: self._get(row, f'a{a}') for a in ('x', 'y', 'z')},
                'gyroscope': {a: self._get(row, f'g{a}') for a in ('x', 'y', 'z')}
            }
        else:
            # 알 수 없는 종류는 엔진에서 오류로 보고
            message = {'type': kind}

        message['timestamp'] = timestamp
        return message

    @staticmethod
    def _get(row: pd.Series, column: str) -> Optional[float]:
        if column not in row.index or pd.isna(row[column]):
            return None
        return float(row[column])

    def to_messages(self) -> List[Dict[str, Any]]:
        return list(self)
