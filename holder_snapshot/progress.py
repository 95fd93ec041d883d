import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

# (percent 0-100, human readable status) -> None
ProgressReporter = Callable[[int, str], None]


def clamp_percent(value):
    return max(0, min(100, int(value)))


def log_progress(percent, message):
    logger.info(f"[{percent:3d}%] {message}")


@dataclass
class ProgressState:
    percent: int = 0
    message: str = ""

    def __call__(self, percent, message):
        self.percent = clamp_percent(percent)
        self.message = message
