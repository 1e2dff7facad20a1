from typing import List


class HarnessError(Exception):
    """Base class for harness errors that are not test assertion failures"""


class ConnectorError(HarnessError):
    """Raised when the connector under test cannot be started or stopped"""


class TeardownError(HarnessError):
    """Raised when more than one teardown step fails"""

    def __init__(self, errors: List[BaseException]):
        self.errors = list(errors)
        details = "; ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        super().__init__(f"{len(self.errors)} teardown steps failed: {details}")


class DocumentValidationError(AssertionError):
    """A fixture document was None or had no fields"""


class PrimaryConnectionError(AssertionError):
    """Too many connection errors while trying to reach the primary"""

    def __init__(self, description: str, threshold: int, error: BaseException):
        self.description = description
        self.threshold = threshold
        self.error = error
        super().__init__(
            f"Unable to connect to primary after {threshold} errors trying to {description}: {error}"
        )
