import asyncio
import threading
import time
from unittest.mock import AsyncMock, Mock, patch

from shield_action.engine.response import (
    DelayedCompletion,
    compose,
    respond_after_delay,
)
from shield_action.model.models import Behavior, EngineResponse


class TestCompose:
    def test_absent_behavior_defaults_to_close(self):
        assert compose(None, None) == EngineResponse(Behavior.CLOSE, None)

    def test_defer_with_delay(self):
        assert compose("defer", 3000) == EngineResponse(Behavior.DEFER, 3000)

    def test_unknown_behavior_is_close(self):
        assert compose("explode", None).behavior is Behavior.CLOSE

    def test_negative_delay_is_dropped(self):
        assert compose(Behavior.CLOSE, -5).delay_ms is None


class TestDelayedCompletion:
    """完了コールバックの遅延と一回性のテスト"""

    def test_without_delay_fires_synchronously(self):
        callback = Mock()
        completion = DelayedCompletion(callback)

        completion.deliver(EngineResponse(Behavior.CLOSE, None))

        callback.assert_called_once_with(EngineResponse(Behavior.CLOSE, None))
        assert completion.fired is True

    def test_delay_holds_back_callback(self):
        fired = threading.Event()
        started = time.monotonic()
        elapsed: list[float] = []

        def callback(_response):
            elapsed.append(time.monotonic() - started)
            fired.set()

        completion = DelayedCompletion(callback)
        completion.deliver(EngineResponse(Behavior.DEFER, 100))

        assert not fired.is_set()
        assert fired.wait(timeout=5)
        assert elapsed[0] >= 0.1

    def test_delay_uses_timer_with_seconds(self):
        with patch("shield_action.engine.response.threading.Timer") as timer_cls:
            completion = DelayedCompletion(Mock())
            completion.deliver(EngineResponse(Behavior.DEFER, 3000))

        assert timer_cls.call_args.args[0] == 3.0
        timer_cls.return_value.start.assert_called_once()

    def test_callback_fires_exactly_once(self):
        callback = Mock()
        completion = DelayedCompletion(callback)

        completion.deliver(EngineResponse(Behavior.CLOSE, None))
        completion.deliver(EngineResponse(Behavior.DEFER, None))

        callback.assert_called_once()

    def test_second_delayed_delivery_is_ignored(self):
        fired = threading.Event()
        callback = Mock(side_effect=lambda _r: fired.set())
        completion = DelayedCompletion(callback)

        completion.deliver(EngineResponse(Behavior.CLOSE, 20))
        completion.deliver(EngineResponse(Behavior.DEFER, 20))

        assert fired.wait(timeout=5)
        time.sleep(0.1)
        callback.assert_called_once_with(EngineResponse(Behavior.CLOSE, 20))

    def test_cancel_prevents_callback(self):
        callback = Mock()
        completion = DelayedCompletion(callback)
        completion.deliver(EngineResponse(Behavior.CLOSE, 200))

        assert completion.cancel() is True
        time.sleep(0.3)

        callback.assert_not_called()
        assert completion.cancel() is False


class TestRespondAfterDelay:
    def test_sleeps_for_delay_before_returning(self):
        response = EngineResponse(Behavior.DEFER, 3000)
        with patch(
            "shield_action.engine.response.asyncio.sleep", new=AsyncMock()
        ) as sleep:
            result = asyncio.run(respond_after_delay(response))

        sleep.assert_awaited_once_with(3.0)
        assert result is response

    def test_no_delay_returns_immediately(self):
        response = EngineResponse(Behavior.CLOSE, None)
        with patch(
            "shield_action.engine.response.asyncio.sleep", new=AsyncMock()
        ) as sleep:
            asyncio.run(respond_after_delay(response))

        sleep.assert_not_awaited()
