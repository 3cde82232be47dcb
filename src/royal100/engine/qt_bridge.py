"""Qt bridge: run a GameController on a worker thread and drive clocks by QTimer."""

from __future__ import annotations

import logging
from collections.abc import Callable

from PyQt6.QtCore import QObject, QThread, QTimer, pyqtSignal, pyqtSlot

from royal100.game.clock import TickCallback
from royal100.game.config import GameConfig
from royal100.game.controller import GameController
from royal100.game.state import GameState, MoveRecord

_LOGGER = logging.getLogger(__name__)


class QtTicker(QObject):
    """Clock ticker backed by a ``QTimer``.

    ``start``/``stop`` may be called from any thread; the requests are
    delivered to the timer's own thread through queued signals.
    """

    _start_requested = pyqtSignal(int)
    _stop_requested = pyqtSignal()

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._on_timeout)
        self._callback: TickCallback | None = None
        self._interval_ms = 0
        self._start_requested.connect(self._start_timer)
        self._stop_requested.connect(self._timer.stop)

    def start(self, interval_ms: int, callback: TickCallback) -> None:
        self._callback = callback
        self._interval_ms = interval_ms
        self._start_requested.emit(interval_ms)

    def stop(self) -> None:
        self._stop_requested.emit()

    @property
    def is_running(self) -> bool:
        return self._timer.isActive()

    def _start_timer(self, interval_ms: int) -> None:
        self._timer.start(interval_ms)

    def _on_timeout(self) -> None:
        callback = self._callback
        if callback is not None:
            callback(self._interval_ms)


class GameWorker(QObject):
    """Thread-affine worker that performs controller operations on demand.

    Controller events are re-emitted as signals, so connected slots on the
    UI thread receive them through queued delivery.
    """

    move_applied = pyqtSignal(object)  # MoveRecord
    state_changed = pyqtSignal(object)  # GameState
    valid_moves_changed = pyqtSignal(object)  # ValidMoves
    move_rejected = pyqtSignal(int, int)
    hint_ready = pyqtSignal(object)  # BestMove
    draw_answered = pyqtSignal(bool)
    undo_finished = pyqtSignal(bool)
    operation_failed = pyqtSignal(str)

    __slots__ = ("_controller",)

    def __init__(self, controller: GameController) -> None:
        super().__init__()
        self._controller = controller
        controller.events.on_move.append(self._emit_move)
        controller.events.on_state_changed.append(self._emit_state)
        controller.events.on_valid_moves.append(self.valid_moves_changed.emit)

    @property
    def controller(self) -> GameController:
        return self._controller

    @pyqtSlot(object)
    def start_game(self, config_obj: object) -> None:
        if not isinstance(config_obj, GameConfig):
            self.operation_failed.emit("Worker received invalid game config")
            return
        self._run(lambda: self._controller.new_game(config_obj))

    @pyqtSlot(object)
    def restore_game(self, saved: object) -> None:
        self._run(lambda: self._controller.restore_game(saved))

    @pyqtSlot(int, int, str)
    def play_move(self, origin: int, destination: int, promotion: str = "") -> None:
        def play() -> None:
            if not self._controller.apply_move(origin, destination, promotion or None):
                self.move_rejected.emit(origin, destination)

        self._run(play)

    @pyqtSlot(int)
    def undo(self, index: int) -> None:
        self._run(lambda: self.undo_finished.emit(self._controller.undo_move(index)))

    @pyqtSlot()
    def request_hint(self) -> None:
        self._run(lambda: self.hint_ready.emit(self._controller.get_hint()))

    @pyqtSlot()
    def offer_draw(self) -> None:
        self._run(lambda: self.draw_answered.emit(self._controller.offer_draw()))

    @pyqtSlot()
    def resign(self) -> None:
        self._run(self._controller.resign)

    @pyqtSlot()
    def stop_thinking(self) -> None:
        """Ask the engine to finish early (safe from any thread)."""
        self._controller.stop_thinking()

    @pyqtSlot()
    def shutdown(self) -> None:
        self._run(self._controller.shutdown)

    def _run(self, operation: Callable[[], object]) -> None:
        try:
            operation()
        except Exception as exc:
            _LOGGER.exception("Game operation failed")
            self.operation_failed.emit(str(exc))

    def _emit_move(self, record: MoveRecord) -> None:
        self.move_applied.emit(record)

    def _emit_state(self, state: GameState) -> None:
        self.state_changed.emit(state)


def start_worker_thread(
    controller: GameController, parent: QObject | None = None
) -> tuple[QThread, GameWorker]:
    """Move a new :class:`GameWorker` onto its own started ``QThread``."""
    thread = QThread(parent)
    worker = GameWorker(controller)
    worker.moveToThread(thread)
    thread.finished.connect(worker.deleteLater)
    thread.start()
    return thread, worker
