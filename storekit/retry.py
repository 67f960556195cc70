# storekit/retry.py
import time
from typing import Any, Callable, Tuple, Type
from storekit.config import Config
from storekit.exceptions import TransientBackendError
import logging

logger = logging.getLogger(__name__)

class RetryPolicy:
    """Bounded retry with linear backoff.

    Attempt ``n`` that fails with a retryable error waits ``n * base_delay``
    seconds before the next attempt. Once ``max_attempts`` is reached the
    last error is raised unchanged. Any other error propagates immediately.
    """

    def __init__(
        self,
        max_attempts: int = Config.RETRY_ATTEMPTS,
        base_delay: float = Config.RETRY_BASE_DELAY,
        retry_on: Tuple[Type[BaseException], ...] = (TransientBackendError,),
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.retry_on = retry_on
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        return attempt * self.base_delay

    def run(self, operation: Callable[..., Any], *args, **kwargs) -> Any:
        name = getattr(operation, "__name__", repr(operation))
        for attempt in range(1, self.max_attempts + 1):
            try:
                return operation(*args, **kwargs)
            except self.retry_on as e:
                if attempt == self.max_attempts:
                    logger.error(f"{name} failed after {attempt} attempts: {e}")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(f"{name} attempt {attempt}/{self.max_attempts} failed: {e}; retrying in {delay:.2f}s")
                self.sleep(delay)
