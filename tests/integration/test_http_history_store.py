"""Integration tests for the REST-backed history store."""

import json

import pytest
import requests
import responses

from contract_deployer.exceptions import (
    AuthorizationError,
    HistoryStoreError,
    RecordNotFoundError,
)
from contract_deployer.history import AdminSession, HistoryRecorder, HttpHistoryStore
from contract_deployer.types import DeploymentRecord

from conftest import CALLER

BASE_URL = "http://history.example.com"
PROXY = "0x" + "a" * 40
IMPLEMENTATION = "0x" + "b" * 40


def _row(record_id: int, deployed_at: str, is_current: int = 0):
    return {
        "id": record_id,
        "contract_id": "mainDAO",
        "contract_name": "Main DAO",
        "address": PROXY,
        "network_name": "Sepolia Testnet",
        "chain_id": 11155111,
        "deployer_address": CALLER,
        "transaction_hash": None,
        "constructor_params": json.dumps({"owner": CALLER}),
        "deployment_type": "uups_proxy",
        "is_proxy": 1,
        "implementation_address": IMPLEMENTATION,
        "is_current": is_current,
        "deployed_at": deployed_at,
    }


class TestCreate:
    @responses.activate
    def test_posts_camel_case_body(self):
        responses.add(
            responses.POST,
            f"{BASE_URL}/api/deployments",
            json={"success": True, "deploymentId": 17},
            status=200,
        )
        recorder = HistoryRecorder(HttpHistoryStore(BASE_URL))

        record = recorder.record(
            contract_id="mainDAO",
            contract_name="Main DAO",
            address=PROXY,
            network_name="Sepolia Testnet",
            chain_id=11155111,
            deployer_address=CALLER,
            implementation_address=IMPLEMENTATION,
            is_uups=True,
        )

        assert record.id == 17
        body = json.loads(responses.calls[0].request.body)
        assert body["contractId"] == "mainDAO"
        assert body["implementationAddress"] == IMPLEMENTATION
        assert body["isUUPS"] is True
        assert body["chainId"] == 11155111

    @responses.activate
    def test_server_error_is_non_fatal(self):
        responses.add(
            responses.POST,
            f"{BASE_URL}/api/deployments",
            json={"success": False, "error": "Missing required fields"},
            status=400,
        )
        recorder = HistoryRecorder(HttpHistoryStore(BASE_URL))

        assert (
            recorder.record(
                contract_id="mainDAO",
                contract_name="Main DAO",
                address=PROXY,
                network_name="Sepolia Testnet",
                chain_id=11155111,
                deployer_address=CALLER,
            )
            is None
        )

    @responses.activate
    def test_missing_deployment_id_raises(self):
        responses.add(
            responses.POST,
            f"{BASE_URL}/api/deployments",
            json={"success": True},
            status=200,
        )

        with pytest.raises(HistoryStoreError):
            HttpHistoryStore(BASE_URL).create(_placeholder_record())

    @responses.activate
    def test_unreachable_store_raises_store_error(self):
        responses.add(
            responses.POST,
            f"{BASE_URL}/api/deployments",
            body=requests.ConnectionError("connection refused"),
        )

        with pytest.raises(HistoryStoreError):
            HttpHistoryStore(BASE_URL).create(_placeholder_record())


def _placeholder_record() -> DeploymentRecord:
    return DeploymentRecord(
        id=0,
        contract_id="mainDAO",
        contract_name="Main DAO",
        address=PROXY,
        network_name="Sepolia Testnet",
        chain_id=11155111,
        deployer_address=CALLER,
        deployed_at="2026-01-01T00:00:00+00:00",
    )


class TestList:
    @responses.activate
    def test_parses_rows_newest_first(self):
        responses.add(
            responses.GET,
            f"{BASE_URL}/api/registry/mainDAO/history",
            json={
                "success": True,
                "history": [
                    _row(1, "2026-01-01 10:00:00"),
                    _row(2, "2026-02-01 10:00:00", is_current=1),
                ],
            },
            status=200,
        )

        history = HttpHistoryStore(BASE_URL).list("mainDAO")

        assert [r.id for r in history] == [2, 1]
        assert history[0].is_current is True
        assert history[0].is_uups is True
        assert history[0].constructor_params == {"owner": CALLER}
        assert history[1].implementation_address == IMPLEMENTATION

    @responses.activate
    def test_404_is_empty_history(self):
        responses.add(
            responses.GET,
            f"{BASE_URL}/api/registry/newContract/history",
            json={"success": False, "error": "Not found"},
            status=404,
        )

        assert HttpHistoryStore(BASE_URL).list("newContract") == []

    @responses.activate
    def test_server_error_raises(self):
        responses.add(
            responses.GET,
            f"{BASE_URL}/api/registry/mainDAO/history",
            json={"success": False, "error": "database locked"},
            status=500,
        )

        with pytest.raises(HistoryStoreError) as exc_info:
            HttpHistoryStore(BASE_URL).list("mainDAO")

        assert "database locked" in str(exc_info.value)


class TestSetCurrent:
    @responses.activate
    def test_sends_bearer_token(self):
        responses.add(
            responses.PUT,
            f"{BASE_URL}/api/admin/deployments/5/set-current",
            json={"success": True, "message": "Deployment marked as current"},
            status=200,
        )
        recorder = HistoryRecorder(HttpHistoryStore(BASE_URL))

        recorder.set_current(5, AdminSession(token="jwt-token"))

        assert responses.calls[0].request.headers["Authorization"] == "Bearer jwt-token"

    @responses.activate
    def test_unauthorized(self):
        responses.add(
            responses.PUT,
            f"{BASE_URL}/api/admin/deployments/5/set-current",
            json={"success": False, "error": "Invalid or expired token"},
            status=401,
        )

        with pytest.raises(AuthorizationError) as exc_info:
            HttpHistoryStore(BASE_URL).set_current(5, AdminSession(token="expired"))

        assert "Invalid or expired token" in str(exc_info.value)

    @responses.activate
    def test_not_found(self):
        responses.add(
            responses.PUT,
            f"{BASE_URL}/api/admin/deployments/99/set-current",
            json={"success": False, "error": "Deployment not found"},
            status=404,
        )

        with pytest.raises(RecordNotFoundError):
            HttpHistoryStore(BASE_URL).set_current(99, AdminSession(token="jwt-token"))
