from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from ..errors import ReadinessTimeout

logger = logging.getLogger(__name__)


def wait_until(
    predicate: Callable[[], bool],
    *,
    what: str,
    interval: float,
    timeout: float,
    cancel: Optional[threading.Event] = None,
) -> None:
    """Poll ``predicate`` at a fixed interval until it returns True.

    Raises ReadinessTimeout once ``timeout`` seconds have elapsed, or as soon
    as ``cancel`` is set.
    """

    cancel = cancel or threading.Event()
    deadline = time.monotonic() + timeout
    attempt = 0

    while True:
        attempt += 1
        if predicate():
            if attempt > 1:
                logger.info("%s ready after %d checks", what, attempt)
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ReadinessTimeout(what, timeout)
        logger.info("Waiting for %s (attempt %d)...", what, attempt)
        if cancel.wait(min(interval, remaining)):
            logger.info("Wait for %s cancelled", what)
            raise ReadinessTimeout(what, timeout)
