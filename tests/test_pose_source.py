"""Tests for the non-blocking, single-request pose source."""

import threading
import time

import pytest

from interactive_frame.pose_source import PoseSource

from conftest import FakeModel, FakeReader, make_estimate


def _wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def reader():
    return FakeReader()


class TestPoseSource:
    def test_single_request_in_flight(self, reader):
        gate = threading.Event()
        model = FakeModel(result=[make_estimate()], gate=gate)
        source = PoseSource(lambda: reader, lambda: model)
        assert source.setup()
        try:
            assert source.latest_estimate() == ()
            assert model.started.wait(2.0)
            for _ in range(20):
                assert source.latest_estimate() == ()
            assert source.requests_submitted == 1
            assert model.calls == 1

            gate.set()
            assert _wait_until(lambda: not source.in_flight)
            result = source.latest_estimate()
            assert len(result) == 1
            assert result[0].keypoint("left_eye") is not None
            assert source.requests_submitted == 2
        finally:
            gate.set()
            source.close()

    def test_latest_result_retained_while_pending(self, reader):
        gate = threading.Event()

        class _SlowAfterFirst(FakeModel):
            def estimate(self, frame):
                if self.calls >= 1:
                    self.gate = gate
                return super().estimate(frame)

        model = _SlowAfterFirst(result=[make_estimate()])
        source = PoseSource(lambda: reader, lambda: model)
        source.setup()
        try:
            source.latest_estimate()
            assert _wait_until(lambda: not source.in_flight)
            assert len(source.latest_estimate()) == 1
            assert _wait_until(lambda: model.calls == 2)
            assert source.in_flight
            assert len(source.latest_estimate()) == 1
        finally:
            gate.set()
            source.close()

    def test_unavailable_source_reports_once(self, capsys):
        def _broken():
            raise RuntimeError("Unable to open camera 0")

        source = PoseSource(_broken, lambda: FakeModel())
        assert not source.setup()
        assert not source.available
        for _ in range(5):
            assert source.latest_estimate() == ()
        out = capsys.readouterr().out
        assert out.count("tracking unavailable") == 1
        assert "Unable to open camera 0" in out

    def test_model_failure_releases_reader(self, reader):
        def _broken_model():
            raise RuntimeError("no model")

        source = PoseSource(lambda: reader, _broken_model)
        assert not source.setup()
        assert reader.released

    def test_inference_error_yields_empty_result(self, reader, capsys):
        model = FakeModel(error=ValueError("bad frame"))
        source = PoseSource(lambda: reader, lambda: model)
        source.setup()
        try:
            source.latest_estimate()
            assert _wait_until(lambda: not source.in_flight)
            assert source.latest_estimate() == ()
            assert _wait_until(lambda: not source.in_flight)
            assert source.latest_estimate() == ()
        finally:
            source.close()
        assert capsys.readouterr().out.count("inference failed") == 1

    def test_close_releases_resources_and_is_idempotent(self, reader):
        model = FakeModel()
        source = PoseSource(lambda: reader, lambda: model)
        source.setup()
        source.latest_estimate()
        source.close()
        source.close()
        assert source.closed
        assert model.closed
        assert reader.released
        assert source.latest_estimate() == ()

    def test_close_does_not_hang_on_stalled_model(self, reader):
        gate = threading.Event()
        model = FakeModel(gate=gate)
        source = PoseSource(lambda: reader, lambda: model, shutdown_timeout_s=0.1)
        source.setup()
        source.latest_estimate()
        assert model.started.wait(2.0)
        started = time.monotonic()
        try:
            source.close()
            assert time.monotonic() - started < 2.0
            assert source.closed
        finally:
            gate.set()

    def test_stalled_model_released_only_after_estimate_returns(self, reader):
        gate = threading.Event()
        model = FakeModel(gate=gate)
        source = PoseSource(lambda: reader, lambda: model, shutdown_timeout_s=0.1)
        source.setup()
        source.latest_estimate()
        assert model.started.wait(2.0)
        try:
            source.close()
            assert not model.closed
            assert not reader.released
        finally:
            gate.set()
        assert _wait_until(lambda: model.closed and reader.released)
        assert not model.closed_during_estimate

    def test_setup_after_close_refused(self, reader):
        source = PoseSource(lambda: reader, lambda: FakeModel())
        source.close()
        assert not source.setup()

    def test_frame_size_from_reader(self, reader):
        source = PoseSource(lambda: reader, lambda: FakeModel())
        assert source.frame_size is None
        source.setup()
        try:
            assert source.frame_size == (640, 480)
        finally:
            source.close()
