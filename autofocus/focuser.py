"""Sweep-based autofocus over stage and focus positions."""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .actuator import ActuatorHal
from .config import FocusParams, FocusType, FrameView
from .focus_metric import random_score
from .image_capturer import ImageCapturer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FocusResult:
    """The best position found by a sweep and its score."""

    stage: int
    focus: int
    score: float


class Focuser:
    """Moves the stage and focus through a grid and keeps the sharpest position."""

    def __init__(
        self,
        capturer: ImageCapturer,
        actuator: ActuatorHal,
        metric: Callable[[FrameView], float] = random_score,
    ) -> None:
        self._capturer = capturer
        self._actuator = actuator
        self._metric = metric
        self.handoff_path = Path(tempfile.gettempdir()) / "autofocus_frame.raw"
        logger.info("init")

    def run(self, params: FocusParams) -> FocusResult | None:
        """Run the focus routine; returns None for routines other than a sweep."""
        logger.info("run")
        if params.type is not FocusType.SWEEP:
            return None
        sweep = params.sweep
        for name, axis in (("focus", sweep.focus_um), ("stage", sweep.stage_steps)):
            if axis.step <= 0:
                raise ValueError(f"{name} step must be positive, got {axis.step}")

        logger.info("State: INIT")
        self._actuator.reset_watchdog()
        self._capturer.start()

        best = FocusResult(sweep.stage_steps.start, sweep.focus_um.start, -1.0)
        stage = sweep.stage_steps.start
        while True:
            logger.info("State: MOVE_STAGE %d", stage)
            self._actuator.move_stage(stage)
            time.sleep(sweep.stage_settle_ms / 1000)
            focus = sweep.focus_um.start
            while True:
                logger.info("State: MOVE_FOCUS %d", focus)
                self._actuator.move_focus(focus)
                time.sleep(sweep.focus_settle_ms / 1000)

                logger.info("State: CAPTURE")
                frame = self._capturer.capture()

                logger.info("State: EVALUATE")
                score = self._metric(frame)
                logger.info("focus score %s", score)
                if score > best.score:
                    best = FocusResult(stage, focus, score)
                self._capturer.release(frame.index)

                focus += sweep.focus_um.step
                if focus > sweep.focus_um.stop:
                    break
            stage += sweep.stage_steps.step
            if stage > sweep.stage_steps.stop:
                break

        logger.info("State: COMPLETE")
        logger.info("best stage = %d, best focus = %d, best score: %s", best.stage, best.focus, best.score)

        self._actuator.move_focus(best.focus)
        self._actuator.move_stage(best.stage)
        time.sleep(sweep.stage_settle_ms / 1000)

        frame = self._capturer.capture()
        self.handoff_frame(frame)
        self._capturer.release(frame.index)
        self._capturer.stop()
        return best

    def handoff_frame(self, frame: FrameView) -> Path:
        """Publish the frame's bytes at `handoff_path`, replacing it atomically."""
        logger.info("handing off frame to another process")
        target = Path(self.handoff_path)
        fd, temporary = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(frame.data)
            os.replace(temporary, target)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(temporary)
            raise
        return target