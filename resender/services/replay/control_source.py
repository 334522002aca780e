from abc import ABC, abstractmethod
from collections import deque
import logging
import os
import sys
from typing import Deque, Iterable, List, TextIO

from resender.models.replay.dto import ControlSignal

logger = logging.getLogger(__name__)

KEY_SIGNALS = {
    "p": ControlSignal.PAUSE,
    "r": ControlSignal.RESUME,
    "s": ControlSignal.STEP,
    "x": ControlSignal.STOP,
}


def signal_for_key(key: str) -> ControlSignal | None:
    return KEY_SIGNALS.get(key.lower())


class ControlSource(ABC):
    """
    Feeds operator signals to the replay loop. `poll` must never block: it returns the
    signals that arrived since the previous call, or an empty list.
    """

    @abstractmethod
    def poll(self) -> List[ControlSignal]:
        ...

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "ControlSource":
        self.open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class NullControlSource(ControlSource):
    """
    Headless runs: no operator, no signals.
    """
    def poll(self) -> List[ControlSignal]:
        return []


class QueueControlSource(ControlSource):
    """
    Signals pushed by code, used by test harnesses and by anything that wants to steer a run
    without a keyboard.
    """
    def __init__(self, signals: Iterable[ControlSignal] = ()) -> None:
        self.__queue: Deque[ControlSignal] = deque(signals)

    def push(self, signal: ControlSignal) -> None:
        self.__queue.append(signal)

    def poll(self) -> List[ControlSignal]:
        signals = list(self.__queue)
        self.__queue.clear()
        return signals


class KeyboardControlSource(ControlSource):
    """
    Reads single keypresses from the console without blocking. On POSIX the terminal is
    switched to cbreak mode while the source is open; on Windows msvcrt is used.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self.__stream = stream or sys.stdin
        self.__saved_attributes: list | None = None

    def open(self) -> None:
        if os.name == "nt" or not self.__stream.isatty():
            return
        import termios
        import tty

        fd = self.__stream.fileno()
        self.__saved_attributes = termios.tcgetattr(fd)
        tty.setcbreak(fd)

    def close(self) -> None:
        if self.__saved_attributes is None:
            return
        import termios

        termios.tcsetattr(self.__stream.fileno(), termios.TCSADRAIN, self.__saved_attributes)
        self.__saved_attributes = None

    def poll(self) -> List[ControlSignal]:
        keys = self.__read_windows() if os.name == "nt" else self.__read_posix()
        signals = []
        for key in keys:
            signal = signal_for_key(key)
            if signal is not None:
                logger.debug(f"Operator pressed {key!r}: {signal.name}")
                signals.append(signal)
        return signals

    def __read_posix(self) -> List[str]:
        import select

        keys: List[str] = []
        while True:
            ready, _, _ = select.select([self.__stream], [], [], 0)
            if not ready:
                return keys
            key = self.__stream.read(1)
            if not key:
                return keys
            keys.append(key)

    @staticmethod
    def __read_windows() -> List[str]:
        import msvcrt

        keys: List[str] = []
        while msvcrt.kbhit():  # type: ignore[attr-defined]
            keys.append(msvcrt.getwch())  # type: ignore[attr-defined]
        return keys


def create_control_source(interactive: bool | None = None) -> ControlSource:
    if interactive is None:
        interactive = sys.stdin is not None and sys.stdin.isatty()
    return KeyboardControlSource() if interactive else NullControlSource()
