"""
Base exceptions for Fleet Relay
"""

from typing import Optional, Dict, Any


class FleetRelayError(Exception):
    """Base exception for all Fleet Relay errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ConfigurationError(FleetRelayError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str = "Configuration error",
        config_key: Optional[str] = None
    ):
        super().__init__(message, "CONFIGURATION_ERROR")
        self.config_key = config_key


class ValidationError(FleetRelayError):
    """Raised when inbound data validation fails"""

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Optional[Any] = None
    ):
        super().__init__(message, "VALIDATION_FAILED")
        self.field = field
        self.value = value


class TemplateResolutionError(FleetRelayError):
    """Raised when a ${key} placeholder has no matching label or annotation"""

    def __init__(
        self,
        message: str = "Template placeholder could not be resolved",
        key: Optional[str] = None
    ):
        super().__init__(message, "TEMPLATE_RESOLUTION_FAILED")
        self.key = key


class StoreError(FleetRelayError):
    """Raised when a record store operation fails"""

    def __init__(
        self,
        message: str = "Record store operation failed",
        management_cluster_id: Optional[str] = None,
        error_code: str = "STORE_ERROR"
    ):
        super().__init__(message, error_code)
        self.management_cluster_id = management_cluster_id


class RecordNotFoundError(StoreError):
    """Raised when no record exists for a management cluster"""

    def __init__(
        self,
        message: str = "Notification record not found",
        management_cluster_id: Optional[str] = None
    ):
        super().__init__(message, management_cluster_id, "RECORD_NOT_FOUND")


class RecordAlreadyExistsError(StoreError):
    """Raised when creating a record that another writer already created"""

    def __init__(
        self,
        message: str = "Notification record already exists",
        management_cluster_id: Optional[str] = None
    ):
        super().__init__(message, management_cluster_id, "RECORD_ALREADY_EXISTS")


class RecordConflictError(StoreError):
    """Raised when a write carries a stale version token"""

    def __init__(
        self,
        message: str = "Notification record was modified concurrently",
        management_cluster_id: Optional[str] = None,
        version_token: Optional[Any] = None
    ):
        super().__init__(message, management_cluster_id, "RECORD_CONFLICT")
        self.version_token = version_token


class StoreUnavailableError(StoreError):
    """Raised when the record store cannot be reached"""

    def __init__(
        self,
        message: str = "Record store unavailable",
        management_cluster_id: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message, management_cluster_id, "STORE_UNAVAILABLE")
        self.original_error = original_error


class SinkError(FleetRelayError):
    """Raised when the notification service rejects or cannot receive a notification"""

    def __init__(
        self,
        message: str = "Notification could not be delivered",
        notification_name: Optional[str] = None,
        status_code: Optional[int] = None,
        operation_id: Optional[str] = None
    ):
        super().__init__(message, "SINK_ERROR")
        self.notification_name = notification_name
        self.status_code = status_code
        self.operation_id = operation_id


class HealthCheckError(FleetRelayError):
    """Raised when a dependency fails its availability check"""

    def __init__(self, message: str = "Health check failed", url: Optional[str] = None):
        super().__init__(message, "HEALTH_CHECK_FAILED")
        self.url = url
