import logging

from sfdash.errors import DeployPhase
from sfdash.mcp.json_response import create_json_response
from sfdash.mcp.server import register_tool
from sfdash.services import org_data
from sfdash.services.apex_deploy import ApexClassDeployer
from sfdash.services.salesforce import Credentials, ToolingGateway

logger = logging.getLogger(__name__)


# =============================================================================
# APEX CLASS TOOLS
# =============================================================================

@register_tool
def list_apex_classes(instance_url: str, access_token: str) -> str:
    """List Apex classes in the org (Tooling API), ordered by name, without bodies.

Args:
    instance_url (str): Org instance URL, e.g. "https://acme.my.salesforce.com".
    access_token (str): OAuth access token for that org.

Returns:
    str: JSON-encoded string.

    # Success
    {
      "success": true,
      "classes": [{"id": "01p...", "name": "InvoiceService", "apiVersion": 58.0, ...}],
      "totalSize": 42
    }
"""
    try:
        gateway = ToolingGateway(Credentials(instance_url=instance_url, access_token=access_token))
        data = org_data.list_apex_classes(gateway)
        return create_json_response(True, classes=data["classes"], totalSize=data["totalSize"])
    except org_data.UpstreamError as e:
        return create_json_response(False, error=str(e), status=e.status_code, details=e.body)
    except Exception as e:
        logger.error("list_apex_classes: %s", e, exc_info=True)
        return create_json_response(False, error=str(e))


@register_tool
def fetch_apex_class(instance_url: str, access_token: str, class_name: str) -> str:
    """Fetch a single Apex class (body + metadata) by Name via the Tooling API.

Read-only. The `id` in the result is what `update_apex_class` expects as
`class_id`.

Args:
    instance_url (str): Org instance URL.
    access_token (str): OAuth access token for that org.
    class_name (str): Exact Apex class Name, e.g. "InvoiceService".

Returns:
    str: JSON-encoded string.

    # Success
    {"success": true, "class": {"id": "01p...", "name": "InvoiceService", "body": "...", ...}}

    # Not found
    {"success": false, "error": "Apex class not found", "className": "InvoiceService"}
"""
    try:
        gateway = ToolingGateway(Credentials(instance_url=instance_url, access_token=access_token))
        apex = org_data.get_apex_class(gateway, class_name)
        if apex is None:
            return create_json_response(False, error="Apex class not found", className=class_name)
        return create_json_response(True, **{"class": apex})
    except org_data.UpstreamError as e:
        return create_json_response(False, error=str(e), status=e.status_code, details=e.body)
    except Exception as e:
        logger.error("fetch_apex_class: %s", e, exc_info=True)
        return create_json_response(False, error=str(e))


@register_tool
def update_apex_class(instance_url: str, access_token: str, class_id: str, class_body: str) -> str:
    """Replace the body of an existing Apex class through a MetadataContainer deployment.

What it does:
- Creates a fresh MetadataContainer, stages an ApexClassMember with the new
  body, submits a ContainerAsyncRequest (IsCheckOnly=false) and polls it
  every 2 seconds for up to 15 attempts.
- Reports which phase failed (validation, container_creation,
  class_member_creation, deployment_request, poll) so a rejected request can
  be told apart from code that did not compile.

Notes & caveats:
- Blocks for up to ~30 seconds while the deploy compiles.
- Nothing is retried except the status checks. Calling again starts a new
  deployment in a new container.
- Concurrent updates of the same class are not serialized.

Args:
    instance_url (str): Org instance URL.
    access_token (str): OAuth access token for that org.
    class_id (str): ApexClass Id (15 or 18 characters), see fetch_apex_class.
    class_body (str): Full Apex source to deploy.

Returns:
    str: JSON-encoded string.

    # Success
    {"success": true, "message": "Apex class updated successfully", "request_id": "1dr..."}

    # Compile failure
    {
      "success": false,
      "error": "Failed to update Apex class",
      "details": {
        "phase": "poll", "kind": "compile_failure", "status": "Failed",
        "errorMsg": "...", "compilerErrors": [...],
        "deploymentErrors": [{"problemType": "Error", "lineNumber": 3, ...}]
      }
    }
"""
    try:
        deployer = ApexClassDeployer()
        result = deployer.deploy_class_update(
            class_id,
            class_body,
            Credentials(instance_url=instance_url, access_token=access_token),
        )
        if result.success:
            return create_json_response(
                True,
                message="Apex class updated successfully",
                request_id=result.request_id,
                container_id=result.container_id,
            )
        if result.phase == DeployPhase.VALIDATION:
            return create_json_response(False, error="Missing required fields", details=result.details)
        return create_json_response(False, error="Failed to update Apex class", details=result.to_details())
    except Exception as e:
        logger.error("update_apex_class: %s", e, exc_info=True)
        return create_json_response(False, error=str(e))
