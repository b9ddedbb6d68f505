"""
방향 추정 엔진 및 워커 통합 테스트
"""

import queue

import numpy as np
import pytest

from hmd_orient.config.system_config import SystemConfig
from hmd_orient.main import OrientationEngine, OrientationWorker
from hmd_orient.orientation.quaternion import Quaternion


GRAVITY = {'x': 0.0, 'y': 0.0, 'z': 9.8}
STILL = {'x': 0.0, 'y': 0.0, 'z': 0.0}


class FakeClock:
    """수동 증가 시계 (ms)"""

    def __init__(self, start=0.0, step=16.0):
        self.now = start
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


def output_quat(result):
    return Quaternion.from_array(result['quaternion'])


class TestQuaternionPath:
    """쿼터니언 입력 경로 테스트"""

    def test_first_sample_passthrough(self):
        """첫 샘플 그대로 출력"""
        engine = OrientationEngine()
        result = engine.handle({'quaternion': [0, 0, 0, 1], 'timestamp': 0})
        assert result == {'quaternion': [0.0, 0.0, 0.0, 1.0]}
        assert engine.sample_count == 1

    def test_quarter_turn_partial(self):
        """항등 → X축 90° 입력 시 중간 지점"""
        engine = OrientationEngine()
        engine.handle({'quaternion': [0, 0, 0, 1], 'timestamp': 0})
        result = engine.handle({'quaternion': [0.7071, 0, 0, 0.7071], 'timestamp': 16})

        q = output_quat(result)
        assert 0 < q.x < 0.7071
        assert q.w < 1
        assert abs(q.norm - 1.0) < 1e-9

    def test_sign_flip_does_not_jump(self):
        """부호 반전 입력에 점프 없음"""
        engine = OrientationEngine()
        engine.handle({'quaternion': [0, 0, 0, 1], 'timestamp': 0})
        result = engine.handle({'quaternion': [0, 0, 0, -1], 'timestamp': 16})
        assert result['quaternion'] == [0.0, 0.0, 0.0, 1.0]

    def test_unnormalized_input(self):
        """비정규 입력 정규화"""
        engine = OrientationEngine()
        result = engine.handle({'quaternion': [0, 0, 0, 5], 'timestamp': 0})
        assert output_quat(result).is_close(Quaternion.identity(), tol=1e-12)

    def test_huge_input_keeps_flip_detection(self):
        """큰 성분 입력 후에도 부호 반전 보정 유지"""
        engine = OrientationEngine()
        first = engine.handle({'quaternion': [0, 0, 1e200, 1e200], 'timestamp': 0})
        np.testing.assert_allclose(first['quaternion'], [0, 0, 0.7071068, 0.7071068], atol=1e-6)

        second = engine.handle({'quaternion': [0, 0, -1, -1], 'timestamp': 16})
        assert output_quat(second).is_close(output_quat(first), tol=1e-12)
        assert second['quaternion'][3] > 0

    def test_missing_timestamp_uses_clock(self):
        """타임스탬프 없으면 시계 사용"""
        clock = FakeClock(start=500.0)
        engine = OrientationEngine(clock=clock)
        engine.handle({'quaternion': [0, 0, 0, 1]})
        assert engine.complementary_filter.get_state().last_time == 500.0


class TestMalformedInput:
    """잘못된 입력 처리 테스트"""

    def test_wrong_arity_leaves_state(self):
        """성분 3개 입력 → 오류, 필터 상태 유지"""
        engine = OrientationEngine()
        engine.handle({'quaternion': [0, 0, 0, 1], 'timestamp': 0})
        engine.handle({'quaternion': [0.7071, 0, 0, 0.7071], 'timestamp': 16})
        before = engine.complementary_filter.get_state().to_dict()

        result = engine.handle({'quaternion': [1, 2, 3]})

        assert 'error' in result
        assert engine.complementary_filter.get_state().to_dict() == before
        assert engine.error_count == 1

    def test_non_finite_rejected(self):
        """무한대 성분 거부"""
        engine = OrientationEngine()
        result = engine.handle({'quaternion': [0, 0, float('inf'), 1], 'timestamp': 0})
        assert 'error' in result
        assert not engine.complementary_filter.is_initialized

    def test_unknown_message(self):
        """알 수 없는 메시지 → 오류"""
        engine = OrientationEngine()
        assert 'error' in engine.handle({'hello': 'world'})

    def test_invalid_screen_orientation(self):
        """허용되지 않은 화면 각도 → 오류"""
        engine = OrientationEngine()
        result = engine.handle({'screen_orientation': 45})
        assert 'error' in result

    def test_fractional_screen_orientation(self):
        """소수 화면 각도 → 오류, 기존 보정 유지"""
        engine = OrientationEngine()
        result = engine.handle({'screen_orientation': 90.7})
        assert 'error' in result
        assert engine.error_count == 1

        out = engine.handle({'quaternion': [0, 0, 0, 1], 'timestamp': 0})
        assert out['quaternion'] == [0.0, 0.0, 0.0, 1.0]


class TestInertialPath:
    """관성 입력 경로 테스트"""

    def test_first_sample_no_output(self):
        """첫 관성 샘플은 출력 없음"""
        engine = OrientationEngine()
        result = engine.handle({'accelerometer': GRAVITY, 'gyroscope': STILL, 'timestamp': 0})
        assert result is None
        assert engine.inertial_filter.is_initialized

    def test_level_still_identity(self):
        """수평 정지 → 항등"""
        engine = OrientationEngine()
        engine.handle({'accelerometer': GRAVITY, 'gyroscope': STILL, 'timestamp': 0})
        result = engine.handle({'accelerometer': GRAVITY, 'gyroscope': STILL, 'timestamp': 16})

        np.testing.assert_allclose(result['quaternion'], [0, 0, 0, 1], atol=1e-9)

    def test_missing_gyroscope_error(self):
        """자이로 누락 → 오류, 상태 유지"""
        engine = OrientationEngine()
        result = engine.handle({'accelerometer': GRAVITY, 'timestamp': 0})
        assert 'error' in result
        assert not engine.inertial_filter.is_initialized


class TestEulerPath:
    """오일러 입력 경로 테스트"""

    def test_yaw(self):
        """alpha 90° → Z축 회전"""
        engine = OrientationEngine()
        result = engine.handle({'alpha': np.pi / 2, 'beta': 0, 'gamma': 0, 'timestamp': 0})
        expected = Quaternion.from_axis_angle(np.array([0, 0, 1]), 90)
        assert output_quat(result).is_close(expected, tol=1e-9)

    def test_null_angles(self):
        """모든 각도 None → 항등"""
        engine = OrientationEngine()
        result = engine.handle({'alpha': None, 'beta': None, 'gamma': None, 'timestamp': 0})
        assert output_quat(result).is_close(Quaternion.identity(), tol=1e-12)


class TestControl:
    """리셋/정면 재설정/화면 방향 테스트"""

    def test_reset_message(self):
        """리셋 메시지 → 필터 미초기화"""
        engine = OrientationEngine()
        engine.handle({'quaternion': [0.7071, 0, 0, 0.7071], 'timestamp': 0})

        assert engine.handle({'reset': True}) is None
        assert not engine.complementary_filter.is_initialized
        assert engine.last_output is None

    def test_reset_idempotent(self):
        """두 번 리셋 = 한 번 리셋"""
        q = [0.1, 0.2, 0.3, 0.9]

        e1 = OrientationEngine()
        e1.handle({'quaternion': [0.7071, 0, 0, 0.7071], 'timestamp': 0})
        e1.handle({'reset': True})
        e1.handle({'reset': True})
        r1 = e1.handle({'quaternion': q, 'timestamp': 10})

        e2 = OrientationEngine()
        e2.handle({'quaternion': [0.7071, 0, 0, 0.7071], 'timestamp': 0})
        e2.reset()
        r2 = e2.handle({'quaternion': q, 'timestamp': 10})

        assert r1 == r2

    def test_reset_then_next_sample_is_passthrough(self):
        """리셋 후 첫 샘플 그대로 출력"""
        engine = OrientationEngine()
        engine.handle({'quaternion': [0, 0, 0, 1], 'timestamp': 0})
        engine.handle({'reset': True})

        q = Quaternion.from_axis_angle(np.array([0, 1, 0]), 50)
        result = engine.handle({'quaternion': q.to_list(), 'timestamp': 16})
        assert output_quat(result).is_close(q, tol=1e-12)

    def test_recenter(self):
        """정면 재설정 후 같은 방향 → 항등"""
        engine = OrientationEngine()
        q = Quaternion.from_axis_angle(np.array([0, 0, 1]), 40)
        engine.handle({'quaternion': q.to_list(), 'timestamp': 0})

        assert engine.handle({'recenter': True}) is None
        result = engine.handle({'quaternion': q.to_list(), 'timestamp': 16})

        assert output_quat(result).is_close(Quaternion.identity(), tol=1e-9)

    def test_recenter_before_any_sample(self):
        """샘플 전 정면 재설정은 항등 기준"""
        engine = OrientationEngine()
        engine.recenter()
        q = Quaternion.from_axis_angle(np.array([1, 0, 0]), 10)
        result = engine.handle({'quaternion': q.to_list(), 'timestamp': 0})
        assert output_quat(result).is_close(q, tol=1e-12)

    def test_reset_clears_recenter(self):
        """리셋 시 기준 방향 해제"""
        engine = OrientationEngine()
        q = Quaternion.from_axis_angle(np.array([0, 0, 1]), 40)
        engine.handle({'quaternion': q.to_list(), 'timestamp': 0})
        engine.recenter()
        engine.reset()

        result = engine.handle({'quaternion': q.to_list(), 'timestamp': 16})
        assert output_quat(result).is_close(q, tol=1e-12)

    def test_screen_orientation(self):
        """화면 90° → Z축 -90° 보정"""
        engine = OrientationEngine()
        assert engine.handle({'screen_orientation': 90}) is None

        result = engine.handle({'quaternion': [0, 0, 0, 1], 'timestamp': 0})
        expected = Quaternion.from_axis_angle(np.array([0, 0, 1]), -90)
        assert output_quat(result).is_close(expected, tol=1e-9)


class TestFromConfig:
    """설정 기반 생성 테스트"""

    def test_defaults(self):
        """기본 설정"""
        engine = OrientationEngine.from_config(SystemConfig())
        assert engine.complementary_filter.slow_coeff == 0.98
        assert engine.inertial_filter.alpha == 0.98

    def test_custom(self):
        """사용자 설정 및 swap_xy 매핑"""
        config = SystemConfig.from_dict({
            'complementary': {'slow_coeff': 0.9, 'flip_guard': False},
            'inertial': {'alpha': 0.5},
            'frame': {'axis_mapping': 'swap_xy'}
        })
        engine = OrientationEngine.from_config(config)

        assert engine.complementary_filter.slow_coeff == 0.9
        assert engine.inertial_filter.alpha == 0.5

        # swap_xy: x' = -y, y' = x
        result = engine.handle({'quaternion': [0.0, 0.6, 0.0, 0.8], 'timestamp': 0})
        np.testing.assert_allclose(result['quaternion'], [-0.6, 0.0, 0.0, 0.8], atol=1e-9)

    def test_without_flip_guard(self):
        """부호 반전 보정 비활성화"""
        config = SystemConfig.from_dict({'complementary': {'flip_guard': False}})
        engine = OrientationEngine.from_config(config)
        result = engine.handle({'quaternion': [0, 0, 0, -1], 'timestamp': 0})
        assert result['quaternion'] == [0.0, 0.0, 0.0, -1.0]


class TestWorker:
    """워커 메시지 처리 테스트"""

    def test_results_in_order(self):
        """도착 순서대로 결과 출력"""
        with OrientationWorker() as worker:
            for i in range(5):
                worker.post({'quaternion': [0, 0, 0, 1], 'timestamp': i * 16})
            results = worker.drain()

        assert len(results) == 5
        assert all(r == {'quaternion': [0.0, 0.0, 0.0, 1.0]} for r in results)

    def test_error_reported(self):
        """잘못된 입력 → 오류 메시지"""
        with OrientationWorker() as worker:
            worker.post({'quaternion': [1, 2, 3]})
            result = worker.get(timeout=1.0)

        assert 'error' in result

    def test_reset_applied_after_pending_samples(self):
        """리셋은 앞선 샘플 처리 후 적용"""
        q = Quaternion.from_axis_angle(np.array([0, 1, 0]), 50)

        with OrientationWorker() as worker:
            worker.post({'quaternion': [0, 0, 0, 1], 'timestamp': 0})
            worker.reset()
            worker.post({'quaternion': q.to_list(), 'timestamp': 16})
            results = worker.drain()

        assert len(results) == 2
        assert output_quat(results[1]).is_close(q, tol=1e-12)

    def test_get_timeout(self):
        """결과 없으면 queue.Empty"""
        with OrientationWorker() as worker:
            with pytest.raises(queue.Empty):
                worker.get(timeout=0.01)

    def test_drain_before_start(self):
        """시작 전 drain은 대기하지 않고 오류"""
        worker = OrientationWorker()
        worker.post({'quaternion': [0, 0, 0, 1], 'timestamp': 0})

        with pytest.raises(RuntimeError):
            worker.drain()

        worker.start()
        assert len(worker.drain()) == 1
        worker.close()

    def test_drain_after_close(self):
        """종료 후 drain은 오류"""
        worker = OrientationWorker()
        worker.start()
        worker.close()

        with pytest.raises(RuntimeError):
            worker.drain()

    def test_post_after_close(self):
        """종료 후 post는 오류"""
        worker = OrientationWorker()
        worker.start()
        assert worker.is_running
        worker.close()

        assert not worker.is_running
        with pytest.raises(RuntimeError):
            worker.post({'reset': True})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
