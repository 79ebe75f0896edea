"""Failure taxonomy for the Apex deployment workflow and the Salesforce gateway."""
from enum import Enum
from typing import Any, Optional


class DeployPhase(str, Enum):
    """Where in the deploy sequence a failure happened."""

    VALIDATION = "validation"
    CONTAINER_CREATION = "container_creation"
    CLASS_MEMBER_CREATION = "class_member_creation"
    DEPLOYMENT_REQUEST = "deployment_request"
    POLL = "poll"


class FailureKind(str, Enum):
    """What went wrong, decided where the failure is raised."""

    VALIDATION = "validation"
    HTTP_ERROR = "http_error"
    PARSE_FALLBACK = "parse_fallback"
    REQUEST_TIMEOUT = "request_timeout"
    POLL_TIMEOUT = "poll_timeout"
    COMPILE_FAILURE = "compile_failure"


class GatewayError(Exception):
    """Base class for transport failures raised by the Salesforce gateway."""


class RequestTimeout(GatewayError):
    """A single HTTP call exceeded its timeout (not the polling budget)."""

    def __init__(self, method: str, url: str, timeout: float):
        super().__init__(f"{method} {url} timed out after {timeout}s")
        self.method = method
        self.url = url
        self.timeout = timeout


class DeployError(Exception):
    """A deploy phase failed; carries the phase tag and best-effort details."""

    phase: DeployPhase = DeployPhase.VALIDATION

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.HTTP_ERROR,
        http_status: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.http_status = http_status
        self.details = details


class InputValidationError(DeployError):
    phase = DeployPhase.VALIDATION

    def __init__(self, fields: dict):
        super().__init__("Missing required fields", kind=FailureKind.VALIDATION, details=fields)


class ContainerCreationFailed(DeployError):
    phase = DeployPhase.CONTAINER_CREATION


class ClassMemberCreationFailed(DeployError):
    phase = DeployPhase.CLASS_MEMBER_CREATION


class DeployRequestFailed(DeployError):
    phase = DeployPhase.DEPLOYMENT_REQUEST
