import logging
import time
from typing import Callable, List

from resender.models.replay.dto import ControlSignal, ReplayMode, ReplayState
from resender.services.replay.control_source import ControlSource

logger = logging.getLogger(__name__)


class ReplayController:
    """
    Cooperative state machine gating the replay loop.

    The loop asks the controller between records whether it may continue. Signals are only
    observed at those points and while waiting out an inter-batch delay. STOPPED is terminal.
    """

    def __init__(
        self,
        source: ControlSource,
        total: int = 0,
        batch_size: int = 1,
        batch_delay: float = 0.0,
        single_step: bool = False,
        poll_interval: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.__source = source
        self.__poll_interval = poll_interval
        self.__sleep = sleep
        self.__clock = clock
        self.state = ReplayState(
            mode=ReplayMode.SINGLE_STEP if single_step else ReplayMode.RUNNING,
            total=total,
            batch_size=batch_size,
            batch_delay=batch_delay,
        )

    @property
    def mode(self) -> ReplayMode:
        return self.state.mode

    @property
    def stopped(self) -> bool:
        return self.state.mode == ReplayMode.STOPPED

    def poll(self) -> List[ControlSignal]:
        """Drain pending signals and apply them. Returns the signals that caused a transition."""
        applied = []
        for signal in self.__source.poll():
            if self.apply(signal):
                applied.append(signal)
        return applied

    def apply(self, signal: ControlSignal) -> bool:
        if self.stopped:
            return False

        previous = self.state.mode
        match signal:
            case ControlSignal.PAUSE:
                self.state.mode = ReplayMode.PAUSED
            case ControlSignal.RESUME:
                self.state.mode = ReplayMode.RUNNING
            case ControlSignal.STEP:
                self.state.mode = ReplayMode.SINGLE_STEP
            case ControlSignal.STOP:
                self.state.mode = ReplayMode.STOPPED

        if previous != self.state.mode:
            logger.info(f"Replay {previous.value} -> {self.state.mode.value}")
        return True

    def stop(self) -> None:
        self.apply(ControlSignal.STOP)

    def advance(self, index: int) -> None:
        self.state.current_index = index

    def wait_while_paused(self) -> ReplayMode:
        if self.state.mode == ReplayMode.PAUSED:
            logger.info("Paused. Press R to resume, S to step one record, X to stop")
        while self.state.mode == ReplayMode.PAUSED:
            self.__sleep(self.__poll_interval)
            self.poll()
        return self.state.mode

    def record_completed(self) -> None:
        if self.state.mode == ReplayMode.SINGLE_STEP:
            self.state.mode = ReplayMode.PAUSED

    def wait_delay(self, seconds: float) -> ReplayMode:
        """
        Wait out an inter-batch delay. RESUME and STEP end the wait early, PAUSE blocks until
        the operator continues, STOP ends the wait and leaves the controller stopped.
        """
        deadline = self.__clock() + seconds
        while not self.stopped:
            applied = self.poll()
            if self.stopped:
                break
            if self.state.mode == ReplayMode.PAUSED:
                self.wait_while_paused()
                break
            if ControlSignal.RESUME in applied or ControlSignal.STEP in applied:
                break

            remaining = deadline - self.__clock()
            if remaining <= 0:
                break
            self.__sleep(min(self.__poll_interval, remaining))
        return self.state.mode
