"""
Normalizes ContainerAsyncRequest outcomes into a single DeploymentResult.

Salesforce does not commit to one error shape: CompilerErrors may be a JSON
array or plain text, DeployDetails may arrive as a decoded object or as a JSON
string, and failed REST calls answer with either JSON or raw text. Every parse
step here falls back to a less structured value instead of raising.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from sfdash.errors import DeployError, DeployPhase, FailureKind

logger = logging.getLogger(__name__)

SUCCESS_STATUS = "Completed"
TERMINAL_STATUSES = frozenset({"Completed", "Failed", "Error", "Aborted"})


class ComponentFailure(BaseModel):
    """One entry of DeployDetails.componentFailures, field names kept as sent."""

    model_config = ConfigDict(frozen=True)

    problemType: Any = None
    problem: Any = None
    componentType: Any = None
    lineNumber: Any = None
    columnNumber: Any = None


class PollResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    request_id: str
    final_status: Optional[str] = None
    record: Optional[Dict[str, Any]] = None
    timed_out: bool = False
    attempts: int = 0


class DeploymentResult(BaseModel):
    """Verdict of one deploy call. Built once by the translator or the engine."""

    model_config = ConfigDict(frozen=True)

    success: bool
    phase: Optional[DeployPhase] = None
    kind: Optional[FailureKind] = None
    status: Optional[str] = None
    error_message: Optional[str] = None
    compiler_errors: Any = None
    component_failures: Optional[List[ComponentFailure]] = None
    timed_out: bool = False
    attempts: Optional[int] = None
    http_status: Optional[int] = None
    details: Any = None
    container_id: Optional[str] = None
    request_id: Optional[str] = None

    @classmethod
    def from_error(cls, error: DeployError, container_id: Optional[str] = None) -> "DeploymentResult":
        return cls(
            success=False,
            phase=error.phase,
            kind=error.kind,
            error_message=error.message,
            http_status=error.http_status,
            details=error.details,
            container_id=container_id,
        )

    def to_details(self) -> Dict[str, Any]:
        """Wire shape reported to the dashboard / MCP client."""
        if self.phase == DeployPhase.POLL:
            details: Dict[str, Any] = {
                "phase": self.phase.value,
                "kind": self.kind.value if self.kind else None,
                "status": self.status or "Unknown",
                "errorMsg": self.error_message or "Unknown error",
            }
            if self.timed_out:
                details["attemptsPerformed"] = self.attempts
            else:
                details["compilerErrors"] = (
                    self.compiler_errors if self.compiler_errors is not None else "No compiler errors available"
                )
                details["deploymentErrors"] = (
                    [f.model_dump() for f in self.component_failures] if self.component_failures else None
                )
            return details

        return {
            "message": self.error_message,
            "phase": self.phase.value if self.phase else "unknown",
            "kind": self.kind.value if self.kind else None,
            "httpStatus": self.http_status,
            "details": self.details,
        }


def parse_error_body(text: str) -> Tuple[Any, Optional[FailureKind]]:
    """Decode an error body as JSON, falling back to {"rawError": text}."""
    try:
        return json.loads(text), None
    except (TypeError, ValueError):
        return {"rawError": text}, FailureKind.PARSE_FALLBACK


def _parse_compiler_errors(raw: Any) -> Any:
    if raw is None or raw == "":
        return None
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        # Plain-text compiler output is a valid shape too
        return raw


def _parse_component_failures(raw: Any) -> List[ComponentFailure]:
    if not raw:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            logger.warning("Could not parse DeployDetails: %s", e)
            return []
    if not isinstance(raw, dict):
        logger.warning("Unexpected DeployDetails shape: %s", type(raw).__name__)
        return []

    failures = []
    entries = raw.get("componentFailures") or []
    if isinstance(entries, dict):
        # A single failure may arrive unwrapped
        entries = [entries]
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        failures.append(
            ComponentFailure(
                problemType=entry.get("problemType"),
                problem=entry.get("problem"),
                componentType=entry.get("componentType"),
                lineNumber=entry.get("lineNumber"),
                columnNumber=entry.get("columnNumber"),
            )
        )
    return failures


def translate(poll_result: PollResult) -> DeploymentResult:
    """Turn the poller's outcome into a DeploymentResult."""
    if poll_result.timed_out:
        return DeploymentResult(
            success=False,
            phase=DeployPhase.POLL,
            kind=FailureKind.POLL_TIMEOUT,
            status=poll_result.final_status or "Timeout",
            error_message=f"Deployment status check timed out after {poll_result.attempts} attempts",
            timed_out=True,
            attempts=poll_result.attempts,
            request_id=poll_result.request_id,
        )

    if poll_result.final_status == SUCCESS_STATUS:
        return DeploymentResult(
            success=True,
            status=SUCCESS_STATUS,
            attempts=poll_result.attempts,
            request_id=poll_result.request_id,
        )

    record = poll_result.record or {}
    failures = _parse_component_failures(record.get("DeployDetails"))
    return DeploymentResult(
        success=False,
        phase=DeployPhase.POLL,
        kind=FailureKind.COMPILE_FAILURE,
        status=poll_result.final_status or "Unknown",
        error_message=record.get("ErrorMsg") or None,
        compiler_errors=_parse_compiler_errors(record.get("CompilerErrors")),
        component_failures=failures or None,
        attempts=poll_result.attempts,
        request_id=poll_result.request_id,
    )
