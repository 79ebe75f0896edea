import json

from sfdash.errors import DeployPhase, FailureKind
from sfdash.services.deploy_result import PollResult, parse_error_body, translate

FAILURES = {
    "componentFailures": [
        {"problemType": "Error", "problem": "Unexpected token 'x'", "componentType": "ApexClass",
         "lineNumber": 12, "columnNumber": 4, "fullName": "InvoiceService"},
        {"problemType": "Warning", "problem": "Deprecated call", "componentType": "ApexClass",
         "lineNumber": 30, "columnNumber": 1},
    ]
}


def _terminal(status, **record):
    return PollResult(request_id="1dr000000000001", final_status=status, record={"Status": status, **record}, attempts=3)


def test_completed_is_success_without_diagnostics():
    result = translate(_terminal("Completed"))

    assert result.success is True
    assert result.phase is None
    assert result.compiler_errors is None
    assert result.component_failures is None


def test_failed_with_json_compiler_errors_and_two_failures():
    result = translate(_terminal(
        "Failed",
        ErrorMsg="Deployment failed",
        CompilerErrors=json.dumps([{"line": 12, "problem": "Unexpected token 'x'"}]),
        DeployDetails=json.dumps(FAILURES),
    ))

    assert result.success is False
    assert result.phase == DeployPhase.POLL
    assert result.kind == FailureKind.COMPILE_FAILURE
    assert result.error_message == "Deployment failed"
    assert result.compiler_errors == [{"line": 12, "problem": "Unexpected token 'x'"}]
    assert len(result.component_failures) == 2
    first, second = result.component_failures
    assert (first.problemType, first.lineNumber, first.columnNumber) == ("Error", 12, 4)
    assert (second.problemType, second.lineNumber) == ("Warning", 30)
    assert first.model_dump() == {
        "problemType": "Error",
        "problem": "Unexpected token 'x'",
        "componentType": "ApexClass",
        "lineNumber": 12,
        "columnNumber": 4,
    }


def test_non_json_compiler_errors_kept_verbatim():
    result = translate(_terminal("Error", CompilerErrors="Unexpected token"))

    assert result.compiler_errors == "Unexpected token"
    assert result.component_failures is None


def test_already_decoded_deploy_details():
    result = translate(_terminal("Failed", DeployDetails=FAILURES))

    assert [f.lineNumber for f in result.component_failures] == [12, 30]


def test_unparseable_deploy_details_is_not_fatal(caplog):
    result = translate(_terminal("Failed", ErrorMsg="bad", DeployDetails="{not json"))

    assert result.success is False
    assert result.component_failures is None
    assert result.error_message == "bad"
    assert "Could not parse DeployDetails" in caplog.text


def test_aborted_without_fields():
    result = translate(_terminal("Aborted"))

    assert result.success is False
    assert result.status == "Aborted"
    details = result.to_details()
    assert details["errorMsg"] == "Unknown error"
    assert details["compilerErrors"] == "No compiler errors available"
    assert details["deploymentErrors"] is None


def test_timeout_keeps_last_status_and_attempts():
    result = translate(PollResult(
        request_id="1dr000000000001",
        final_status="Queued",
        record={"Status": "Queued"},
        timed_out=True,
        attempts=15,
    ))

    assert result.success is False
    assert result.timed_out is True
    assert result.kind == FailureKind.POLL_TIMEOUT
    assert result.status == "Queued"
    assert result.attempts == 15
    assert "timed out" in result.error_message
    assert result.to_details()["attemptsPerformed"] == 15


def test_timeout_without_any_record():
    result = translate(PollResult(request_id="1dr000000000001", timed_out=True, attempts=15))

    assert result.status == "Timeout"


def test_parse_error_body_fallback():
    assert parse_error_body('[{"errorCode": "X"}]') == ([{"errorCode": "X"}], None)
    assert parse_error_body("<html>oops</html>") == ({"rawError": "<html>oops</html>"}, FailureKind.PARSE_FALLBACK)


def test_single_component_failure_object_is_kept():
    lone = {"componentFailures": {"problemType": "Error", "problem": "Missing ';'", "lineNumber": 7}}

    result = translate(_terminal("Failed", DeployDetails=lone))

    assert [(f.problem, f.lineNumber) for f in result.component_failures] == [("Missing ';'", 7)]
