"""Device domain specific exceptions."""


class DeviceError(Exception):
    """Base class for device related domain errors."""

    code = "DEVICE_ERROR"


class DeviceValidationError(DeviceError):
    """Raised when input fails pagination, state or field length rules."""

    code = "VALIDATION_ERROR"


class DeviceNotFoundError(DeviceError):
    """Raised when the requested device could not be found."""

    code = "NOT_FOUND"


class DeviceUpdateError(DeviceError):
    """Raised when an update is not allowed for the device's current state."""

    code = "UPDATE_ERROR"


class DeviceDeletionError(DeviceError):
    """Raised when deleting a device that is not available."""

    code = "DELETION_ERROR"


class TransientStoreError(DeviceError):
    """Raised when the backing store is unreachable or times out."""

    code = "STORE_UNAVAILABLE"


class CircuitOpenError(TransientStoreError):
    """Raised without touching the store while the circuit breaker is open."""
