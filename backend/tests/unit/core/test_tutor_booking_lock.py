"""
Unit tests for booking_lock.py.

Coverage:
1) Key generation
2) Redis acquisition, release and failure modes
3) Process-local fallback when Redis is not configured
"""

import threading
from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from tutorconnect.core.booking_lock import _lock_key, tutor_booking_lock
from tutorconnect.core.config import settings
from tutorconnect.core.exceptions import ServiceException


@pytest.fixture
def redis_configured(monkeypatch):
    monkeypatch.setattr(settings, "redis_url", "redis://localhost:6379/0")


class TestKeyGeneration:
    def test_shares_package_settings(self):
        from tutorconnect.core import booking_lock

        assert booking_lock.settings is settings

    def test_lock_key_format(self):
        assert _lock_key("01KDGCP1R4N6AQKXNWV4PFY2HB") == (
            "tutorconnect:lock:tutor:01KDGCP1R4N6AQKXNWV4PFY2HB:bookings"
        )


class TestRedisLock:
    def test_acquire_and_release(self, redis_configured):
        mock_redis = MagicMock()
        mock_redis.set.return_value = True
        mock_redis.eval.return_value = 1

        with patch("tutorconnect.core.booking_lock._get_sync_redis", return_value=mock_redis):
            with tutor_booking_lock("TUTOR1", timeout_s=0.1, ttl_s=15):
                pass

        args, kwargs = mock_redis.set.call_args
        assert args[0] == _lock_key("TUTOR1")
        assert kwargs == {"nx": True, "ex": 15}
        token = args[1]
        mock_redis.eval.assert_called_once()
        assert mock_redis.eval.call_args.args[-1] == token

    def test_held_lock_times_out(self, redis_configured):
        mock_redis = MagicMock()
        mock_redis.set.return_value = False

        with patch("tutorconnect.core.booking_lock._get_sync_redis", return_value=mock_redis):
            with pytest.raises(ServiceException) as exc_info:
                with tutor_booking_lock("TUTOR1", timeout_s=0.01):
                    pytest.fail("lock body must not run")

        assert exc_info.value.retryable is True
        assert exc_info.value.code == "BOOKING_LOCK_TIMEOUT"
        assert exc_info.value.details["reason"] == "timeout"
        mock_redis.eval.assert_not_called()

    def test_redis_down_refuses_to_proceed_unlocked(self, redis_configured):
        mock_redis = MagicMock()
        mock_redis.set.side_effect = RedisConnectionError("refused")

        with patch("tutorconnect.core.booking_lock._get_sync_redis", return_value=mock_redis):
            with pytest.raises(ServiceException) as exc_info:
                with tutor_booking_lock("TUTOR1", timeout_s=0.01):
                    pytest.fail("lock body must not run")

        assert exc_info.value.details["reason"] == "unavailable"
        assert exc_info.value.status_code == 503

    def test_release_error_does_not_mask_body(self, redis_configured):
        mock_redis = MagicMock()
        mock_redis.set.return_value = True
        mock_redis.eval.side_effect = RedisConnectionError("gone")

        with patch("tutorconnect.core.booking_lock._get_sync_redis", return_value=mock_redis):
            with tutor_booking_lock("TUTOR1", timeout_s=0.1):
                result = "done"

        assert result == "done"


class TestLocalLock:
    def test_used_when_redis_not_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "redis_url", None)

        with patch("tutorconnect.core.booking_lock._get_sync_redis") as get_redis:
            with tutor_booking_lock("LOCAL1", timeout_s=0.1):
                pass

        get_redis.assert_not_called()

    def test_second_holder_waits_then_times_out(self, monkeypatch):
        monkeypatch.setattr(settings, "redis_url", None)
        entered = threading.Event()
        release = threading.Event()

        def holder():
            with tutor_booking_lock("LOCAL2", timeout_s=1):
                entered.set()
                release.wait(2)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert entered.wait(2)
            with pytest.raises(ServiceException) as exc_info:
                with tutor_booking_lock("LOCAL2", timeout_s=0.05):
                    pytest.fail("lock body must not run")
            assert exc_info.value.details["backend"] == "local"
        finally:
            release.set()
            thread.join()

        with tutor_booking_lock("LOCAL2", timeout_s=0.1):
            pass

    def test_locks_are_per_tutor(self, monkeypatch):
        monkeypatch.setattr(settings, "redis_url", None)

        with tutor_booking_lock("LOCAL3", timeout_s=0.05):
            with tutor_booking_lock("LOCAL4", timeout_s=0.05):
                pass
