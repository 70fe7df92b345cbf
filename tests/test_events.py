from unittest.mock import MagicMock

from sqsbuffer.events import EventEmitter


class TestEventEmitter:
    def test_emit_calls_listeners_in_order(self):
        calls = []
        emitter = EventEmitter()
        emitter.on("flush", lambda items: calls.append(("first", items)))
        emitter.on("flush", lambda items: calls.append(("second", items)))

        assert emitter.emit("flush", [1, 2])
        assert calls == [("first", [1, 2]), ("second", [1, 2])]

    def test_emit_without_listeners(self):
        emitter = EventEmitter()
        assert not emitter.emit("stopped")

    def test_failing_listener_does_not_stop_the_others(self):
        failing = MagicMock(side_effect=ValueError("boom"))
        other = MagicMock()

        emitter = EventEmitter()
        emitter.on("error", failing)
        emitter.on("error", other)
        emitter.emit("error", "payload")

        failing.assert_called_once_with("payload")
        other.assert_called_once_with("payload")

    def test_off(self):
        listener = MagicMock()
        emitter = EventEmitter()
        emitter.on("stopped", listener)
        emitter.off("stopped", listener)
        emitter.off("stopped", listener)

        assert not emitter.emit("stopped")
        assert emitter.listeners("stopped") == []
        listener.assert_not_called()
