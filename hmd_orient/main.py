"""
main.py - hmd_orient 방향 추정 엔진

샘플 수집 → 필터 갱신 → 좌표계 보정 → 쿼터니언 출력 파이프라인을 통합합니다.

파이프라인:
1. 입력 메시지 검증 및 샘플 타입 판별
2. 샘플 종류별 필터 갱신
   - 쿼터니언/오일러: 부호 반전 보정 + 적응형 상보 필터 (SLERP)
   - 관성: 자이로/가속도 상보 필터
3. 축 매핑 → 기준 방향 → 화면 방향 보정
4. {'quaternion': [x, y, z, w]} 또는 {'error': msg} 출력

Version: 1.0
Author: FurSys AI Team
"""

import argparse
import queue
import threading
import numpy as np
import pandas as pd
from typing import Any, Callable, Dict, List, Optional
import logging
from pathlib import Path

from .config.system_config import SystemConfig, load_config
from .input.samples import SampleKind, MotionSample, parse_message, default_clock
from .input.sample_loader import SampleLoader
from .orientation.quaternion import Quaternion, RotationOrder
from .orientation.complementary_filter import ComplementaryFilter, SignFlipGuard
from .orientation.inertial_filter import InertialComplementaryFilter
from .orientation.frame_mapping import CoordinateFrameMapper, ReferenceOrientation

logger = logging.getLogger(__name__)


class OrientationEngine:
    """
    방향 추정 엔진

    필터 상태를 단독 소유하며, 한 번에 하나의 메시지를 끝까지 처리합니다.
    reset()은 진행 중인 샘플 처리와 섞이지 않도록 같은 락으로 보호됩니다.

    Example:
        >>> engine = OrientationEngine.from_config(load_config("config.yaml"))
        >>> engine.handle({'quaternion': [0, 0, 0, 1], 'timestamp': 0})
        {'quaternion': [0.0, 0.0, 0.0, 1.0]}
    """

    def __init__(
        self,
        complementary_filter: Optional[ComplementaryFilter] = None,
        inertial_filter: Optional[InertialComplementaryFilter] = None,
        frame_mapper: Optional[CoordinateFrameMapper] = None,
        flip_guard: bool = True,
        euler_order: RotationOrder = RotationOrder.ZXY,
        clock: Callable[[], float] = default_clock
    ):
        """
        Args:
            complementary_filter: 쿼터니언 도메인 필터
            inertial_filter: 관성 필터
            frame_mapper: 좌표계 매핑
            flip_guard: 부호 반전 보정 사용 여부
            euler_order: 오일러 샘플 회전 순서
            clock: 타임스탬프 없는 샘플용 시계 (ms)
        """
        self._complementary = complementary_filter or ComplementaryFilter()
        self._inertial = inertial_filter or InertialComplementaryFilter()
        self._mapper = frame_mapper or CoordinateFrameMapper()
        self._flip_guard = SignFlipGuard() if flip_guard else None
        self._reference = ReferenceOrientation()
        self._euler_order = euler_order
        self._clock = clock

        self._lock = threading.RLock()

        self._last_mapped: Optional[Quaternion] = None
        self._last_output: Optional[Quaternion] = None
        self._sample_count = 0
        self._error_count = 0

        logger.info("OrientationEngine initialized")

    def handle(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        단일 메시지 처리

        Args:
            message: 입력 메시지

        Returns:
            {'quaternion': [...]}, {'error': msg}, 또는 출력이 없으면 None
        """
        with self._lock:
            try:
                sample = parse_message(message, self._clock, self._euler_order)
                return self._dispatch(sample)
            except ValueError as e:
                self._error_count += 1
                logger.warning(f"Sample dropped: {e}")
                return {'error': str(e)}

    def _dispatch(self, sample: MotionSample) -> Optional[Dict[str, Any]]:
        if sample.kind == SampleKind.RESET:
            self._reset_locked()
            return None

        if sample.kind == SampleKind.RECENTER:
            self._recenter_locked()
            return None

        if sample.kind == SampleKind.SCREEN_ORIENTATION:
            self._mapper.set_screen_orientation(sample.angle)
            return None

        self._sample_count += 1

        if sample.kind == SampleKind.INERTIAL:
            quat = self._inertial.update(sample.accel, sample.gyro, sample.timestamp)
            if quat is None:
                return None
            return self._emit(quat)

        if sample.kind == SampleKind.EULER:
            quat = sample.to_quaternion()
        else:
            quat = sample.quaternion.normalize()

        if self._flip_guard is not None:
            quat = self._flip_guard.process(quat)

        filtered = self._complementary.update(quat, sample.timestamp)
        return self._emit(filtered)

    def _emit(self, quat: Quaternion) -> Dict[str, Any]:
        """축 매핑 → 기준 방향 → 화면 보정 후 출력 메시지 생성"""
        mapped = self._mapper.map_axes(quat)
        self._last_mapped = mapped

        relative = self._reference.apply(mapped)
        output = self._mapper.apply_screen_correction(relative).normalize()
        self._last_output = output

        return {'quaternion': output.to_list()}

    def reset(self):
        """필터/기준 방향 전체 리셋 (멱등)"""
        with self._lock:
            self._reset_locked()

    def _reset_locked(self):
        self._complementary.reset()
        self._inertial.reset()
        if self._flip_guard is not None:
            self._flip_guard.reset()
        self._reference.clear()
        self._last_mapped = None
        self._last_output = None
        logger.info("Orientation engine reset")

    def recenter(self):
        """현재 방향을 정면(항등)으로 재정의"""
        with self._lock:
            self._recenter_locked()

    def _recenter_locked(self):
        base = self._last_mapped if self._last_mapped is not None else Quaternion.identity()
        self._reference.capture(base)

    @property
    def last_output(self) -> Optional[Quaternion]:
        return self._last_output

    @property
    def sample_count(self) -> int:
        return self._sample_count

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def complementary_filter(self) -> ComplementaryFilter:
        return self._complementary

    @property
    def inertial_filter(self) -> InertialComplementaryFilter:
        return self._inertial

    @classmethod
    def from_config(
        cls,
        config: SystemConfig,
        clock: Callable[[], float] = default_clock
    ) -> 'OrientationEngine':
        """
        설정에서 엔진 생성

        Args:
            config: SystemConfig
            clock: 시계 (ms)

        Returns:
            OrientationEngine
        """
        comp = config.complementary
        inertial = config.inertial

        return cls(
            complementary_filter=ComplementaryFilter(
                slow_coeff=comp.slow_coeff,
                fast_coeff=comp.fast_coeff,
                movement_threshold=comp.movement_threshold,
                max_delta_time=comp.max_delta_time,
                nominal_rate=comp.nominal_rate
            ),
            inertial_filter=InertialComplementaryFilter(
                alpha=inertial.alpha,
                gyro_in_degrees=inertial.gyro_in_degrees,
                max_delta_time=inertial.max_delta_time
            ),
            frame_mapper=CoordinateFrameMapper(
                axis_mapping=config.frame.axis_mapping,
                screen_orientation=config.frame.screen_orientation
            ),
            flip_guard=comp.flip_guard,
            euler_order=RotationOrder(config.frame.euler_order),
            clock=clock
        )


class OrientationWorker:
    """
    독립 실행 컨텍스트의 필터 워커

    입력 큐의 메시지를 도착 순서대로 처리하고 결과를 출력 큐에 넣습니다.
    close()로 채널을 닫으면 남은 메시지 처리 후 스레드가 종료됩니다.

    Example:
        >>> with OrientationWorker(engine) as worker:
        ...     worker.post({'quaternion': [0, 0, 0, 1]})
        ...     result = worker.get(timeout=1.0)
    """

    _STOP = object()

    def __init__(self, engine: Optional[OrientationEngine] = None):
        self.engine = engine or OrientationEngine()
        self._inbox: queue.Queue = queue.Queue()
        self._outbox: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    def start(self):
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="orientation-worker", daemon=True)
        self._thread.start()
        logger.debug("OrientationWorker started")

    def post(self, message: Dict[str, Any]):
        """샘플 또는 제어 메시지 전달"""
        if self._closed:
            raise RuntimeError("Worker is closed")
        self._inbox.put(message)

    def reset(self):
        """리셋 명령 (앞선 샘플 처리 이후 적용)"""
        self.post({'reset': True})

    def get(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        다음 결과 수신

        Raises:
            queue.Empty: timeout 내 결과 없음
        """
        return self._outbox.get(timeout=timeout)

    def drain(self) -> List[Dict[str, Any]]:
        """
        대기 중인 메시지를 모두 처리한 뒤 쌓인 결과 반환

        Raises:
            RuntimeError: 워커 스레드가 실행 중이 아님
        """
        if not self.is_running:
            raise RuntimeError("Worker is not running")
        self._inbox.join()
        results = []
        while True:
            try:
                results.append(self._outbox.get_nowait())
            except queue.Empty:
                return results

    def close(self, timeout: Optional[float] = 1.0):
        if self._closed:
            return
        self._closed = True
        self._inbox.put(self._STOP)
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.debug("OrientationWorker closed")

    def _run(self):
        while True:
            item = self._inbox.get()
            try:
                if item is self._STOP:
                    return
                result = self.engine.handle(item)
                if result is not None:
                    self._outbox.put(result)
            except Exception as e:
                logger.exception(f"Unexpected error while processing sample: {e}")
                self._outbox.put({'error': str(e)})
            finally:
                self._inbox.task_done()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> 'OrientationWorker':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def replay_samples(
    engine: OrientationEngine,
    messages,
    max_samples: Optional[int] = None
) -> List[Dict[str, Any]]:
    """
    기록된 메시지 재생

    Returns:
        출력 행 리스트 [{'index', 'timestamp', 'x', 'y', 'z', 'w', 'error'}, ...]
    """
    rows = []
    outputs = 0

    for i, message in enumerate(messages):
        if max_samples is not None and i >= max_samples:
            break

        result = engine.handle(message)
        if result is None:
            continue

        row = {'index': i, 'timestamp': message.get('timestamp'),
               'x': np.nan, 'y': np.nan, 'z': np.nan, 'w': np.nan, 'error': None}

        if 'error' in result:
            row['error'] = result['error']
        else:
            row.update(zip(('x', 'y', 'z', 'w'), result['quaternion']))
            outputs += 1

            if outputs % 100 == 0:
                euler = Quaternion.from_array(result['quaternion']).to_euler(degrees=True)
                logger.info(
                    f"Sample {i}: euler=[{euler[0]:.1f}, {euler[1]:.1f}, {euler[2]:.1f}]"
                )

        rows.append(row)

    return rows


def main():
    parser = argparse.ArgumentParser(description='Replay recorded motion samples through hmd_orient')

    parser.add_argument(
        '--samples',
        type=str,
        required=True,
        help='샘플 CSV 파일'
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='설정 파일 경로'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='결과 CSV 경로 (기본: output_dir/orientation.csv)'
    )
    parser.add_argument(
        '--max_samples',
        type=int,
        default=None,
        help='최대 처리 샘플 수'
    )

    args = parser.parse_args()

    config = load_config(args.config) if args.config else SystemConfig()

    logging.basicConfig(
        level=getattr(logging, config.output.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    loader = SampleLoader(args.samples)
    logger.info(f"Sample types: {loader.type_counts}")

    engine = OrientationEngine.from_config(config)
    rows = replay_samples(engine, loader, max_samples=args.max_samples)

    df = pd.DataFrame(rows, columns=['index', 'timestamp', 'x', 'y', 'z', 'w', 'error'])
    logger.info(f"Processed {engine.sample_count} samples, {engine.error_count} errors")

    if args.output or config.output.save_results:
        output_path = Path(args.output) if args.output else Path(config.output.output_dir) / 'orientation.csv'
        output_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_path, index=False)
        logger.info(f"Results saved to {output_path}")


if __name__ == '__main__':
    main()
