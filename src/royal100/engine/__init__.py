"""Engine package: protocol codec and the engine process session.

The Qt bridge lives in :mod:`royal100.engine.qt_bridge` and is imported
on demand so the session can be used without a Qt installation.
"""

from royal100.engine.protocol import (
    BestMove,
    ClockTimes,
    EngineLine,
    LineKind,
    Score,
    ScoreType,
    classify_line,
)
from royal100.engine.session import (
    EngineEvents,
    EngineExited,
    EngineOptions,
    EngineSession,
    EngineTimeout,
    IEngineSession,
    SubprocessEngineProcess,
)

__all__ = [
    "BestMove",
    "ClockTimes",
    "EngineEvents",
    "EngineExited",
    "EngineLine",
    "EngineOptions",
    "EngineSession",
    "EngineTimeout",
    "IEngineSession",
    "LineKind",
    "Score",
    "ScoreType",
    "SubprocessEngineProcess",
    "classify_line",
]
