"""Shared fixtures: a mocked Salesforce org and an instant-sleep deployer."""
import json

import pytest
import responses

from sfdash.config import API_VERSION
from sfdash.services.apex_deploy import ApexClassDeployer
from sfdash.services.salesforce import Credentials

INSTANCE_URL = "https://acme.my.salesforce.com"
TOOLING_URL = f"{INSTANCE_URL}/services/data/v{API_VERSION}/tooling"
DATA_URL = f"{INSTANCE_URL}/services/data/v{API_VERSION}"
CLASS_ID = "01p5g00000ABCDEAAA"
REQUEST_ID = "1dr5g00000XYZ12AAA"


@pytest.fixture
def credentials():
    return Credentials(instance_url=INSTANCE_URL, access_token="00Dxx!token")


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def deployer(sleeps):
    return ApexClassDeployer(poll_interval=2.0, max_attempts=15, sleep=sleeps.append)


def add_container(rsps, container_id="1dc5g000000AAAAAAA", status=201, body=None):
    rsps.add(
        responses.POST,
        f"{TOOLING_URL}/sobjects/MetadataContainer",
        json=body if body is not None else {"id": container_id, "success": True, "errors": []},
        status=status,
    )


def add_member(rsps, member_id="4005g000000BBBBAAA", status=201, body=None, text=None):
    if text is not None:
        rsps.add(
            responses.POST,
            f"{TOOLING_URL}/sobjects/ApexClassMember",
            body=text,
            status=status,
            content_type="text/plain",
        )
        return
    rsps.add(
        responses.POST,
        f"{TOOLING_URL}/sobjects/ApexClassMember",
        json=body if body is not None else {"id": member_id, "success": True, "errors": []},
        status=status,
    )


def add_deploy(rsps, request_id=REQUEST_ID, status=201, body=None):
    rsps.add(
        responses.POST,
        f"{TOOLING_URL}/sobjects/ContainerAsyncRequest",
        json=body if body is not None else {"id": request_id, "success": True, "errors": []},
        status=status,
    )


def status_record(status, **fields):
    record = {
        "attributes": {"type": "ContainerAsyncRequest"},
        "Id": REQUEST_ID,
        "Status": status,
        "CompilerErrors": None,
        "ErrorMsg": None,
        "DeployDetails": None,
    }
    record.update(fields)
    return record


def add_status(rsps, status, http_status=200, **fields):
    rsps.add(
        responses.GET,
        f"{TOOLING_URL}/query/",
        json={"size": 1, "totalSize": 1, "done": True, "records": [status_record(status, **fields)]},
        status=http_status,
    )


def calls_to(rsps, fragment, method=None):
    return [
        c for c in rsps.calls
        if fragment in c.request.url and (method is None or c.request.method == method)
    ]


def request_json(call):
    return json.loads(call.request.body)
