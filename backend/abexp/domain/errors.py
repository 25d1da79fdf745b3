"""Error taxonomy for the experiment domain.

Callers catch the category classes (ValidationError, DuplicateError,
NotFoundError, AlreadyFinishedError, UnknownError) and map them to their
own representation, e.g. HTTP status codes.
"""
from uuid import UUID


class ExperimentError(Exception):
    """Base class for all domain errors."""


# Validation

class ValidationError(ExperimentError):
    """A value failed validation at construction time."""


class ExperimentNameEmptyError(ValidationError):
    def __init__(self):
        super().__init__("experiment name cannot be empty")


class VariantDistributionInvalidError(ValidationError):
    def __init__(self, value=None):
        self.value = value
        super().__init__(
            "variant distribution should be more than zero and less than or equal to 100"
        )


class VariantDataEmptyError(ValidationError):
    def __init__(self):
        super().__init__("variant data cannot be empty")


class DistributionSumError(ValidationError):
    def __init__(self, total: float | None = None):
        self.total = total
        super().__init__("sum of distributions is not equal to 100")


class DeviceIdError(ValidationError):
    def __init__(self, raw_id: str):
        self.raw_id = raw_id
        super().__init__(f"{raw_id} is not a valid IDFA")


# Conflicts

class DuplicateError(ExperimentError):
    """An entity with the same unique key already exists."""


class DuplicateExperimentError(DuplicateError):
    def __init__(self, name):
        self.name = name
        super().__init__(f"experiment with name {name} already exists")


class DuplicateDeviceError(DuplicateError):
    def __init__(self, device_id):
        self.device_id = device_id
        super().__init__(f"device with id {device_id} already exists")


class NotFoundError(ExperimentError):
    """No entity matches the given identifier."""


class ExperimentNotFoundError(NotFoundError):
    def __init__(self, experiment_id: UUID):
        self.experiment_id = experiment_id
        super().__init__(f"experiment with id {experiment_id} not found")


class DeviceNotFoundError(NotFoundError):
    def __init__(self, device_id):
        self.device_id = device_id
        super().__init__(f"device with id {device_id} not found")


class AlreadyFinishedError(ExperimentError):
    """The experiment has already been finished."""


class ExperimentAlreadyFinishedError(AlreadyFinishedError):
    def __init__(self, experiment_id: UUID):
        self.experiment_id = experiment_id
        super().__init__(f"experiment with id {experiment_id} is already finished")


class UnknownError(ExperimentError):
    """Wraps a storage failure. The original exception is kept in __cause__."""
