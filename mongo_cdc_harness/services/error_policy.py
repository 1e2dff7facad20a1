import logging

from mongo_cdc_harness.errors import PrimaryConnectionError

logger = logging.getLogger(__name__)


class ConnectionErrorPolicy:
    """
    Counts connection errors reported while talking to the primary

    An instance is handed to a retrying executor as its error callback. The
    executor retries on its own; this policy only decides when to give up.
    Once more than `threshold` errors have been reported the policy fails
    and raises `PrimaryConnectionError`, which ends the test.
    """

    def __init__(self, threshold: int):
        """
        Args:
            threshold: Number of errors tolerated before failing
        """
        if threshold < 0:
            raise ValueError(f"Error threshold must not be negative, got {threshold}")
        self.threshold = threshold
        self.attempts = 0
        self.failed = False

    def __call__(self, description: str, error: BaseException):
        """Record one connection error for the operation `description`"""
        self.attempts += 1
        if self.attempts > self.threshold:
            self.failed = True
            raise PrimaryConnectionError(description, self.threshold, error) from error

        logger.error(
            f"Error while attempting to {description}: {error}",
            exc_info=(type(error), error, error.__traceback__)
        )

    def __repr__(self) -> str:
        state = "failed" if self.failed else "counting"
        return f"ConnectionErrorPolicy(threshold={self.threshold}, attempts={self.attempts}, {state})"
