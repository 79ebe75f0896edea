"""HTTP endpoints backing the dashboard. Mounted on the MCP server's Starlette app."""
import logging
from typing import Any, Dict, Optional, Tuple

from simple_salesforce.exceptions import SalesforceError
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from sfdash.config import LOGIN_HISTORY_DEFAULT_LIMIT
from sfdash.errors import DeployPhase, FailureKind, RequestTimeout
from sfdash.services import org_data
from sfdash.services.apex_deploy import ApexClassDeployer
from sfdash.services.salesforce import Credentials, ToolingGateway, get_salesforce_connection

logger = logging.getLogger(__name__)

TOOLING_PROVIDER = "salesforce-tooling-api"
DATA_PROVIDER = "salesforce-api"


class BadRequest(Exception):
    def __init__(self, payload: Dict[str, Any]):
        super().__init__(payload.get("error"))
        self.payload = payload


def _error(status_code: int, error: str, **extra) -> JSONResponse:
    return JSONResponse({"error": error, **extra}, status_code=status_code)


def _internal_error(err: Exception, what: str) -> JSONResponse:
    logger.error("%s error: %s", what, err, exc_info=True)
    return _error(
        500,
        "Internal server error",
        message=str(err) or "Something went wrong",
        timestamp=org_data.utc_timestamp(),
    )


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise BadRequest({"error": "Invalid request body format"})
    if not isinstance(body, dict):
        raise BadRequest({"error": "Invalid request body format"})
    return body


def _presence(value: Any) -> str:
    return "present" if value else "missing"


def _require_auth(auth: Any, error: str = "Missing authentication data") -> Credentials:
    credentials = Credentials.from_payload(auth)
    if credentials is None or not credentials.instance_url or not credentials.access_token:
        raise BadRequest({
            "error": error,
            "details": {
                "instanceUrl": _presence(credentials and credentials.instance_url),
                "accessToken": _presence(credentials and credentials.access_token),
            },
        })
    return credentials


def _upstream_error(status_code: int, body: str, reason: str = "") -> JSONResponse:
    return _error(
        status_code,
        "Failed to fetch from Salesforce",
        details=body,
        status=status_code,
        statusText=reason,
    )


def _timeout_error() -> JSONResponse:
    return _error(504, "Request timeout", details="The request took too long to complete")


def deploy_response(result) -> Tuple[int, Dict[str, Any]]:
    """Map a DeploymentResult onto the status code and body the dashboard expects."""
    if result.success:
        return 200, {
            "success": True,
            "message": "Apex class updated successfully",
            "timestamp": org_data.utc_timestamp(),
        }
    if result.phase == DeployPhase.VALIDATION:
        return 400, {"error": "Missing required fields", "details": result.details}
    if result.phase == DeployPhase.POLL:
        return 400, {"error": "Failed to update Apex class", "details": result.to_details()}
    status = 504 if result.kind == FailureKind.REQUEST_TIMEOUT else 500
    return status, {"error": "Error during Apex class update", "details": result.to_details()}


async def update_apex_class(request: Request) -> JSONResponse:
    try:
        body = await _json_body(request)
        deployer = getattr(request.app.state, "deployer", None) or ApexClassDeployer()
        result = await run_in_threadpool(
            deployer.deploy_class_update,
            body.get("classId"),
            body.get("classBody"),
            Credentials.from_payload(body.get("sfAuthData")),
        )
        status, payload = deploy_response(result)
        return JSONResponse(payload, status_code=status)
    except BadRequest as e:
        return JSONResponse(e.payload, status_code=400)
    except Exception as e:
        return _internal_error(e, "Salesforce Update Apex Class API")


async def list_apex_classes(request: Request) -> JSONResponse:
    try:
        body = await _json_body(request)
        credentials = _require_auth(body.get("sfAuthData"))
        data = await run_in_threadpool(org_data.list_apex_classes, ToolingGateway(credentials))
        return JSONResponse({
            "success": True,
            **data,
            "provider": TOOLING_PROVIDER,
            "timestamp": org_data.utc_timestamp(),
        })
    except BadRequest as e:
        return JSONResponse(e.payload, status_code=400)
    except org_data.UpstreamError as e:
        return _upstream_error(e.status_code, e.body, e.reason)
    except RequestTimeout:
        return _timeout_error()
    except Exception as e:
        return _internal_error(e, "Salesforce Apex Classes API")


async def get_apex_class(request: Request) -> JSONResponse:
    try:
        body = await _json_body(request)
        class_name = body.get("className")
        credentials = Credentials.from_payload(body.get("sfAuthData"))
        if not isinstance(class_name, str) or not class_name.strip():
            class_name = None
        if not class_name or credentials is None or not credentials.instance_url or not credentials.access_token:
            raise BadRequest({
                "error": "Missing required fields",
                "details": {
                    "className": _presence(class_name),
                    "instanceUrl": _presence(credentials and credentials.instance_url),
                    "accessToken": _presence(credentials and credentials.access_token),
                },
            })
        apex = await run_in_threadpool(org_data.get_apex_class, ToolingGateway(credentials), class_name)
        if apex is None:
            return _error(404, "Apex class not found", className=class_name)
        return JSONResponse({
            "success": True,
            "class": apex,
            "provider": TOOLING_PROVIDER,
            "timestamp": org_data.utc_timestamp(),
        })
    except BadRequest as e:
        return JSONResponse(e.payload, status_code=400)
    except org_data.UpstreamError as e:
        return _upstream_error(e.status_code, e.body, e.reason)
    except RequestTimeout:
        return _timeout_error()
    except Exception as e:
        return _internal_error(e, "Salesforce Apex Class API")


async def _data_query(credentials: Credentials, func, *args):
    sf = get_salesforce_connection(credentials)
    return await run_in_threadpool(func, sf, *args)


def _salesforce_error(e: SalesforceError) -> JSONResponse:
    logger.warning("Salesforce data API error: %s", e)
    return _error(e.status or 502, "Salesforce API error", details=e.content)


async def users(request: Request) -> JSONResponse:
    try:
        body = await _json_body(request)
        credentials = _require_auth(body.get("sfAuthData"))
        data = await _data_query(credentials, org_data.fetch_users)
        return JSONResponse({
            "success": True,
            **data,
            "provider": DATA_PROVIDER,
            "timestamp": org_data.utc_timestamp(),
        })
    except BadRequest as e:
        return JSONResponse(e.payload, status_code=400)
    except SalesforceError as e:
        return _salesforce_error(e)
    except Exception as e:
        return _internal_error(e, "Salesforce Users API")


def _parse_limit(value: Any) -> int:
    if value is None:
        return LOGIN_HISTORY_DEFAULT_LIMIT
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise BadRequest({"error": "Invalid limit", "details": {"limit": "invalid"}})
    if limit < 1:
        raise BadRequest({"error": "Invalid limit", "details": {"limit": "invalid"}})
    return limit


async def login_history(request: Request) -> JSONResponse:
    try:
        body = await _json_body(request)
        credentials = _require_auth(body.get("sfAuthData"))
        limit = _parse_limit(body.get("limit"))
        records = await _data_query(credentials, org_data.fetch_login_history, limit)
        return JSONResponse({"success": True, "records": records})
    except BadRequest as e:
        return JSONResponse(e.payload, status_code=400)
    except SalesforceError as e:
        return _salesforce_error(e)
    except Exception as e:
        return _internal_error(e, "Salesforce Login History API")


async def chatter_feed(request: Request) -> JSONResponse:
    try:
        body = await _json_body(request)
        credentials = _require_auth(body, error="Missing accessToken or instanceUrl")
        records = await _data_query(credentials, org_data.fetch_chatter_feed)
        return JSONResponse(records)
    except BadRequest as e:
        return JSONResponse(e.payload, status_code=400)
    except SalesforceError as e:
        return _salesforce_error(e)
    except Exception as e:
        return _internal_error(e, "Salesforce Chatter API")


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


async def templates(request: Request) -> JSONResponse:
    try:
        credentials = Credentials(
            instance_url=request.headers.get("x-instance-url", ""),
            access_token=_bearer_token(request) or "",
        )
        if not credentials.access_token or not credentials.instance_url:
            return _error(401, "Unauthorized request")
        folder = request.query_params.get("folder") or "public"
        data = await _data_query(credentials, org_data.fetch_email_templates, folder)
        return JSONResponse({"success": True, "templates": data})
    except SalesforceError as e:
        return _salesforce_error(e)
    except Exception as e:
        return _internal_error(e, "Salesforce Templates API")


async def health(request: Request) -> JSONResponse:
    try:
        body = await _json_body(request)
        credentials = _require_auth(body, error="Missing accessToken or instanceUrl")
        data = await _data_query(credentials, org_data.fetch_org_limits)
        return JSONResponse({"success": True, "data": data})
    except BadRequest as e:
        return JSONResponse(e.payload, status_code=400)
    except SalesforceError as e:
        return _salesforce_error(e)
    except Exception as e:
        return _internal_error(e, "Salesforce Health API")


api_routes = [
    Route("/api/updateApexClass", update_apex_class, methods=["POST"]),
    Route("/api/apexClasses", list_apex_classes, methods=["POST"]),
    Route("/api/apexClass", get_apex_class, methods=["POST"]),
    Route("/api/users", users, methods=["POST"]),
    Route("/api/loginHistory", login_history, methods=["POST"]),
    Route("/api/salesforceChatter", chatter_feed, methods=["POST"]),
    Route("/api/templates", templates, methods=["GET"]),
    Route("/api/health", health, methods=["POST"]),
]


def register_routes(server) -> None:
    """Attach every /api route to a FastMCP server's HTTP app."""
    for route in api_routes:
        server.custom_route(route.path, methods=sorted(route.methods - {"HEAD"}))(route.endpoint)
        logger.info("Registered route: %s", route.path)
