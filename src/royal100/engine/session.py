"""EngineSession — request/response channel to one engine process.

The session hides process restarts from its callers: every query either
returns a parsed reply or blocks while the engine is restarted and the
request repeated.  Lines written by the engine are read on a background
thread, classified by :mod:`royal100.engine.protocol` and matched in FIFO
order against the pending waiters.
"""

from __future__ import annotations

import logging
import os
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Protocol

from royal100.core.move import Move, ValidMoves
from royal100.core.notation import position_from_fen
from royal100.core.position import Position
from royal100.core.types import Square
from royal100.engine.protocol import (
    BestMove,
    ClockTimes,
    EngineLine,
    LineKind,
    Score,
    classify_line,
    go_command,
    position_command,
    setoption_command,
)

_LOGGER = logging.getLogger(__name__)

MAX_SEARCH_DEPTH = 30
DEFAULT_SEARCH_TIMEOUT_MS = 120_000


class EngineExited(Exception):
    """Raised for a pending request when the engine process goes away."""


class EngineTimeout(Exception):
    """Raised when the engine does not answer a request in time."""


# ── Options ──────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class EngineOptions:
    """How to launch and drive the engine.

    All durations are in milliseconds.  A *depth* above
    :data:`MAX_SEARCH_DEPTH` means "no depth limit".
    """

    command: Sequence[str] = ("royal100-engine",)
    threads: int | None = None
    elo: int | None = None
    debug_log_file: str | None = None
    depth: int | None = None
    move_time_ms: int | None = None
    ready_timeout_ms: int = 5000
    query_timeout_ms: int = 5000
    search_timeout_ms: int | None = None
    retry_delay_ms: int = 1000

    @property
    def search_depth(self) -> int | None:
        if self.depth is None or self.depth <= 0 or self.depth > MAX_SEARCH_DEPTH:
            return None
        return self.depth

    @property
    def effective_search_timeout_ms(self) -> int:
        if self.search_timeout_ms is not None:
            return self.search_timeout_ms
        if self.move_time_ms:
            return self.move_time_ms + self.query_timeout_ms
        return DEFAULT_SEARCH_TIMEOUT_MS


def clamp_threads(threads: int, cpu_count: int | None = None) -> int:
    """Keep the thread count within ``1..2×cpu``."""
    cpus = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
    return max(1, min(threads, cpus * 2))


# ── Process transport ────────────────────────────────────────────────────────


class EngineProcess(Protocol):
    """Minimal line-oriented transport to a running engine."""

    def send(self, line: str) -> None: ...

    def readline(self) -> str:
        """Next line including its terminator, or ``""`` at end of stream."""
        ...

    def kill(self) -> None: ...


ProcessFactory = Callable[[Sequence[str]], EngineProcess]


class SubprocessEngineProcess:
    """Engine running as a child process talking over stdin/stdout."""

    __slots__ = ("_proc",)

    def __init__(self, command: Sequence[str]) -> None:
        self._proc = subprocess.Popen(
            list(command),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            bufsize=1,
        )

    def send(self, line: str) -> None:
        assert self._proc.stdin is not None
        self._proc.stdin.write(line + "\n")
        self._proc.stdin.flush()

    def readline(self) -> str:
        assert self._proc.stdout is not None
        return self._proc.stdout.readline()

    def kill(self) -> None:
        if self._proc.poll() is None:
            self._proc.kill()
        try:
            self._proc.wait(timeout=2)
        except subprocess.TimeoutExpired:
            _LOGGER.warning("Engine process %s did not exit after kill", self._proc.pid)
        if self._proc.stdin is not None:
            try:
                self._proc.stdin.close()
            except OSError:
                _LOGGER.debug("Engine stdin already broken on close")


# ── Events ───────────────────────────────────────────────────────────────────


@dataclass
class EngineEvents:
    """Observable callbacks, invoked on the reader thread."""

    on_ready: list[Callable[[], None]] = field(default_factory=list)
    on_best_move: list[Callable[[BestMove | None], None]] = field(default_factory=list)
    on_score: list[Callable[[Score], None]] = field(default_factory=list)
    on_fen: list[Callable[[str], None]] = field(default_factory=list)
    on_valid_moves: list[Callable[[ValidMoves], None]] = field(default_factory=list)
    on_checkers: list[Callable[[list[Square]], None]] = field(default_factory=list)
    on_data: list[Callable[[str], None]] = field(default_factory=list)
    on_exit: list[Callable[[], None]] = field(default_factory=list)


# ── Interface ────────────────────────────────────────────────────────────────


class IEngineSession(ABC):
    """What the game layer needs from an engine."""

    events: EngineEvents

    @abstractmethod
    def start(self, options: EngineOptions | None = None) -> None:
        """Boot the engine and wait until it is ready."""

    @abstractmethod
    def set_position(self, fen: str, moves: Iterable[Move] = ()) -> None:
        """Load a position without waiting for an answer."""

    @abstractmethod
    def query_best_move(self, fen: str, clocks: ClockTimes | None = None) -> BestMove:
        """Search *fen* and return the engine's move."""

    @abstractmethod
    def query_legal_moves(self, fen: str) -> ValidMoves:
        """All legal moves of the side to move in *fen*."""

    @abstractmethod
    def query_checking_pieces(self, fen: str) -> list[Square]:
        """Squares of the pieces giving check in *fen*."""

    @abstractmethod
    def query_position(self, fen: str, moves: Iterable[Move] = ()) -> Position:
        """Position reached from *fen* after *moves*, as the engine sees it."""

    @abstractmethod
    def stop_search(self) -> None:
        """Ask a running search to finish early."""

    @abstractmethod
    def quit(self) -> None:
        """Shut the engine down."""

    @property
    @abstractmethod
    def is_searching(self) -> bool: ...


# ── Session ──────────────────────────────────────────────────────────────────


@dataclass(slots=True, eq=False)
class _Waiter:
    kind: LineKind
    future: Future = field(default_factory=Future)


def _emit(handlers: list[Callable[..., None]], *args: object) -> None:
    for handler in list(handlers):
        handler(*args)


class EngineSession(IEngineSession):
    """Drives one engine process and restarts it on timeouts or exits."""

    __slots__ = (
        "_options",
        "_process_factory",
        "_sleep",
        "_lock",
        "_process",
        "_generation",
        "_waiters",
        "_searching",
        "events",
        "restart_count",
    )

    def __init__(
        self,
        options: EngineOptions | None = None,
        *,
        process_factory: ProcessFactory = SubprocessEngineProcess,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._options = options or EngineOptions()
        self._process_factory = process_factory
        self._sleep = sleep
        self._lock = threading.Lock()
        self._process: EngineProcess | None = None
        self._generation = 0
        self._waiters: deque[_Waiter] = deque()
        self._searching = False
        self.events = EngineEvents()
        self.restart_count = 0

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def options(self) -> EngineOptions:
        return self._options

    @property
    def is_running(self) -> bool:
        return self._process is not None

    @property
    def is_searching(self) -> bool:
        return self._searching

    # ── Lifecycle ────────────────────────────────────────────────────────

    def start(self, options: EngineOptions | None = None) -> None:
        """Spawn and configure the engine, retrying until it reports ready.

        Raises ``OSError`` when the engine binary cannot be launched.
        """
        if options is not None:
            self._options = options
        while True:
            self._spawn()
            try:
                self._configure()
                self._send("ucinewgame")
                self._request(["isready"], LineKind.READY, self._options.ready_timeout_ms)
            except (EngineTimeout, EngineExited) as exc:
                self.restart_count += 1
                _LOGGER.warning("Engine did not become ready (%s); starting it again", exc)
                continue
            _LOGGER.info("Engine ready: %s", " ".join(self._options.command))
            return

    def restart(self) -> None:
        self.restart_count += 1
        _LOGGER.warning("Restarting engine (restart #%d)", self.restart_count)
        self.start()

    def quit(self) -> None:
        with self._lock:
            process = self._process
            self._process = None
            self._generation += 1
            pending = self._drain_waiters()
        self._searching = False
        if process is None:
            return
        try:
            process.send("quit")
        except OSError:
            _LOGGER.debug("Engine pipe already closed on quit")
        process.kill()
        self._reject(pending, EngineExited("engine shut down"))
        _LOGGER.info("Engine stopped")

    # ── Commands ─────────────────────────────────────────────────────────

    def set_position(self, fen: str, moves: Iterable[Move] = ()) -> None:
        try:
            self._send(position_command(fen, moves))
        except EngineExited:
            # The next query restarts the engine and resends its position.
            _LOGGER.warning("Engine gone while setting position %r", fen)

    def stop_search(self) -> None:
        if self._process is None:
            return
        try:
            self._send("stop")
        except EngineExited:
            _LOGGER.debug("Engine gone before stop could be sent")

    def query_best_move(self, fen: str, clocks: ClockTimes | None = None) -> BestMove:
        opts = self._options
        commands = [
            position_command(fen),
            go_command(opts.search_depth, opts.move_time_ms, clocks),
        ]
        self._searching = True
        try:
            while True:
                try:
                    best = self._request(
                        commands, LineKind.BEST_MOVE, opts.effective_search_timeout_ms
                    )
                except (EngineTimeout, EngineExited) as exc:
                    _LOGGER.warning("Best-move search failed (%s)", exc)
                    self.restart()
                else:
                    if best is not None:
                        assert isinstance(best, BestMove)
                        return best
                    _LOGGER.warning("Engine finished its search without a move")
                self._sleep(opts.retry_delay_ms / 1000)
        finally:
            self._searching = False

    def query_legal_moves(self, fen: str) -> ValidMoves:
        result = self._query([position_command(fen), "valid_moves"], LineKind.VALID_MOVES)
        assert isinstance(result, ValidMoves)
        return result

    def query_checking_pieces(self, fen: str) -> list[Square]:
        result = self._query([position_command(fen), "checkers"], LineKind.CHECKERS)
        assert isinstance(result, list)
        return result

    def query_position(self, fen: str, moves: Iterable[Move] = ()) -> Position:
        result = self._query([position_command(fen, moves), "fen"], LineKind.FEN)
        assert isinstance(result, str)
        return position_from_fen(result)

    # ── Internals ────────────────────────────────────────────────────────

    def _query(self, commands: list[str], kind: LineKind) -> object:
        while True:
            try:
                return self._request(commands, kind, self._options.query_timeout_ms)
            except (EngineTimeout, EngineExited) as exc:
                _LOGGER.warning("%s query failed (%s)", kind.name.lower(), exc)
                self.restart()

    def _request(self, commands: list[str], kind: LineKind, timeout_ms: int | None) -> object:
        """Send *commands* and wait for the next line of *kind*.

        The waiter is queued before anything is sent so a fast reply
        cannot slip past it.
        """
        waiter = _Waiter(kind)
        with self._lock:
            self._waiters.append(waiter)
        try:
            for command in commands:
                self._send(command)
            timeout = timeout_ms / 1000 if timeout_ms else None
            try:
                return waiter.future.result(timeout=timeout)
            except FutureTimeoutError:
                raise EngineTimeout(
                    f"no {kind.name.lower()} reply within {timeout_ms} ms"
                ) from None
        finally:
            with self._lock:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)

    def _send(self, line: str) -> None:
        process = self._process
        if process is None:
            raise EngineExited("engine is not running")
        _LOGGER.debug("engine << %s", line)
        try:
            process.send(line)
        except OSError as exc:
            raise EngineExited(f"cannot write to engine: {exc}") from exc

    def _configure(self) -> None:
        opts = self._options
        if opts.threads:
            self._send(setoption_command("Threads", clamp_threads(opts.threads)))
        if opts.elo:
            self._send(setoption_command("UCI_LimitStrength", True))
            self._send(setoption_command("UCI_Elo", opts.elo))
        if opts.debug_log_file:
            self._send(setoption_command("Debug Log File", opts.debug_log_file))

    def _spawn(self) -> None:
        with self._lock:
            old = self._process
            self._process = None
            self._generation += 1
            generation = self._generation
            pending = self._drain_waiters()
        self._reject(pending, EngineExited("engine replaced"))
        if old is not None:
            old.kill()

        process = self._process_factory(self._options.command)
        with self._lock:
            self._process = process
        reader = threading.Thread(
            target=self._read_loop,
            args=(process, generation),
            name=f"royal100-engine-reader-{generation}",
            daemon=True,
        )
        reader.start()

    def _read_loop(self, process: EngineProcess, generation: int) -> None:
        while True:
            try:
                raw = process.readline()
            except (OSError, ValueError):
                raw = ""
            if not raw:
                break
            line = raw.rstrip("\r\n")
            if line:
                self._dispatch(classify_line(line), generation)
        self._handle_exit(generation)

    def _dispatch(self, line: EngineLine, generation: int) -> None:
        _LOGGER.debug("engine >> %s", line.raw)
        matched: _Waiter | None = None
        with self._lock:
            if generation != self._generation:
                return
            for waiter in self._waiters:
                if waiter.kind == line.kind:
                    matched = waiter
                    break
            if matched is not None:
                self._waiters.remove(matched)
        if matched is not None:
            matched.future.set_result(line.payload)
        self._publish(line)

    def _publish(self, line: EngineLine) -> None:
        kind = line.kind
        if kind == LineKind.READY:
            _emit(self.events.on_ready)
        elif kind == LineKind.BEST_MOVE:
            _emit(self.events.on_best_move, line.payload)
        elif kind == LineKind.SCORE:
            _emit(self.events.on_score, line.payload)
        elif kind == LineKind.FEN:
            _emit(self.events.on_fen, line.payload)
        elif kind == LineKind.VALID_MOVES:
            _emit(self.events.on_valid_moves, line.payload)
        elif kind == LineKind.CHECKERS:
            _emit(self.events.on_checkers, line.payload)
        else:
            _emit(self.events.on_data, line.raw)

    def _handle_exit(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._process = None
            pending = self._drain_waiters()
        _LOGGER.warning("Engine process exited")
        self._reject(pending, EngineExited("engine process exited"))
        _emit(self.events.on_exit)

    def _drain_waiters(self) -> list[_Waiter]:
        pending = list(self._waiters)
        self._waiters.clear()
        return pending

    @staticmethod
    def _reject(waiters: list[_Waiter], exc: Exception) -> None:
        for waiter in waiters:
            waiter.future.set_exception(exc)
