"""Error types surfaced by the calorie log core."""


class CalorieLogError(Exception):
    """Base class for calorie log errors."""


class ValidationError(CalorieLogError):
    """Raised when a payload is structurally invalid."""


class StorageError(CalorieLogError):
    """Raised when a storage transaction fails."""


class EstimatorError(CalorieLogError):
    """Raised when the calorie estimator fails or returns malformed data."""

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail
