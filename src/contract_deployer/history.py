"""Deployment history persistence for contract-deployer library."""

import hmac
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests

from .constants import HISTORY_LIMIT
from .exceptions import AuthorizationError, HistoryStoreError, RecordNotFoundError
from .paths import get_default_history_path
from .types import DeploymentRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminSession:
    """Bearer credential issued by the external admin login flow."""

    token: str
    username: Optional[str] = None

    def authorization_header(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


class HistoryStore:
    """Persistent store of deployment records keyed by contract identifier."""

    def create(self, record: DeploymentRecord) -> DeploymentRecord:
        """Persist a new record (never current) and return it with its id assigned."""
        raise NotImplementedError

    def list(self, contract_id: str, limit: int = HISTORY_LIMIT) -> List[DeploymentRecord]:
        """Return records for a contract, newest first. Unknown ids give an empty list."""
        raise NotImplementedError

    def set_current(self, record_id: int, admin: AdminSession) -> None:
        """Mark a record current, clearing the flag on the contract's other records."""
        raise NotImplementedError


class JsonFileHistoryStore(HistoryStore):
    """
    History store kept in a local JSON file.

    File layout::

        {"next_id": 3, "records": [{...DeploymentRecord fields...}, ...]}

    All reads and writes go through one lock, so the clear-then-set of
    ``set_current`` is atomic for every caller sharing the store.
    """

    def __init__(
        self,
        path: Optional[Union[Path, str]] = None,
        admin_token: Optional[str] = None,
    ):
        self.path = Path(path) if path is not None else get_default_history_path()
        self._admin_token = admin_token
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path) as f:
                return json.load(f)
        except FileNotFoundError:
            return {"next_id": 1, "records": []}
        except (OSError, json.JSONDecodeError) as e:
            raise HistoryStoreError(f"Cannot read history file {self.path}: {e}") from e

    def _save(self, data: Dict[str, Any]) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            # TypeError: a value json cannot serialize
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise HistoryStoreError(f"Cannot write history file {self.path}: {e}") from e

    def create(self, record: DeploymentRecord) -> DeploymentRecord:
        with self._lock:
            data = self._load()
            created = replace(record, id=data["next_id"], is_current=False)
            data["records"].append(created.to_dict())
            data["next_id"] += 1
            self._save(data)
        return created

    def list(self, contract_id: str, limit: int = HISTORY_LIMIT) -> List[DeploymentRecord]:
        with self._lock:
            data = self._load()
        records = [
            DeploymentRecord.from_dict(r) for r in data["records"] if r["contract_id"] == contract_id
        ]
        records.sort(key=lambda r: (r.deployed_at, r.id), reverse=True)
        return records[:limit]

    def _authorize(self, admin: Optional[AdminSession]) -> None:
        if admin is None or not admin.token:
            raise AuthorizationError("No authorization token provided")
        if self._admin_token is None:
            raise AuthorizationError("Admin authorization is not configured for this store")
        if not hmac.compare_digest(admin.token, self._admin_token):
            raise AuthorizationError("Invalid or expired token")

    def set_current(self, record_id: int, admin: AdminSession) -> None:
        self._authorize(admin)
        with self._lock:
            data = self._load()
            target = next((r for r in data["records"] if r["id"] == record_id), None)
            if target is None:
                raise RecordNotFoundError(f"Deployment {record_id} not found")

            for r in data["records"]:
                if r["contract_id"] == target["contract_id"]:
                    r["is_current"] = r["id"] == record_id
            self._save(data)

        logger.info(
            "Set deployment %d as current for %s (%s)",
            record_id,
            target["contract_id"],
            target["address"],
        )


class HttpHistoryStore(HistoryStore):
    """History store reached through the deployments REST API."""

    def __init__(self, base_url: str, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def create(self, record: DeploymentRecord) -> DeploymentRecord:
        body = {
            "contractId": record.contract_id,
            "contractName": record.contract_name,
            "address": record.address,
            "networkName": record.network_name,
            "chainId": record.chain_id,
            "deployerAddress": record.deployer_address,
            "transactionHash": record.transaction_hash,
            "constructorParams": record.constructor_params,
            "implementationAddress": record.implementation_address,
            "isUUPS": record.is_uups,
        }
        try:
            response = requests.post(
                f"{self.base_url}/api/deployments", json=body, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise HistoryStoreError(f"History store unreachable: {e}") from e

        result = _json_or_error(response)
        deployment_id = result.get("deploymentId")
        if deployment_id is None:
            raise HistoryStoreError("History store response has no deploymentId")
        return replace(record, id=int(deployment_id), is_current=False)

    def list(self, contract_id: str, limit: int = HISTORY_LIMIT) -> List[DeploymentRecord]:
        try:
            response = requests.get(
                f"{self.base_url}/api/registry/{contract_id}/history", timeout=self.timeout
            )
        except requests.RequestException as e:
            raise HistoryStoreError(f"History store unreachable: {e}") from e

        # No history for this contract yet
        if response.status_code == 404:
            return []

        result = _json_or_error(response)
        records = [_record_from_row(row) for row in result.get("history") or []]
        records.sort(key=lambda r: (r.deployed_at, r.id), reverse=True)
        return records[:limit]

    def set_current(self, record_id: int, admin: AdminSession) -> None:
        try:
            response = requests.put(
                f"{self.base_url}/api/admin/deployments/{record_id}/set-current",
                headers=admin.authorization_header(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise HistoryStoreError(f"History store unreachable: {e}") from e

        if response.status_code in (401, 403):
            raise AuthorizationError(_error_message(response))
        if response.status_code == 404:
            raise RecordNotFoundError(f"Deployment {record_id} not found")
        _json_or_error(response)


class HistoryRecorder:
    """
    Records confirmed deployments and manages the current-record flag.

    Saving is best effort: a store failure is logged and reported to the
    caller as ``None``, never as a failed deployment.
    """

    def __init__(self, store: HistoryStore):
        self.store = store
        self._set_current_lock = threading.Lock()

    def record(
        self,
        contract_id: str,
        contract_name: str,
        address: str,
        network_name: str,
        chain_id: int,
        deployer_address: str,
        transaction_hash: Optional[str] = None,
        constructor_params: Optional[Dict[str, Any]] = None,
        implementation_address: Optional[str] = None,
        is_uups: bool = False,
    ) -> Optional[DeploymentRecord]:
        """
        Persist a confirmed deployment.

        Returns:
            The stored record, or None if the store failed
        """
        record = DeploymentRecord(
            id=0,
            contract_id=contract_id,
            contract_name=contract_name,
            address=address,
            network_name=network_name,
            chain_id=chain_id,
            deployer_address=deployer_address,
            deployed_at=datetime.now(timezone.utc).isoformat(timespec="microseconds"),
            transaction_hash=transaction_hash,
            constructor_params=dict(constructor_params or {}),
            implementation_address=implementation_address,
            is_uups=is_uups,
        )
        try:
            saved = self.store.create(record)
        except Exception as e:
            # The transaction is already on chain; a lost record must not fail it
            logger.warning("Could not save deployment of %s at %s: %s", contract_id, address, e)
            return None

        logger.info(
            "Saved deployment: %s at %s on %s%s",
            contract_name,
            address,
            network_name,
            f" (impl: {implementation_address})" if implementation_address else "",
        )
        return saved

    def history(self, contract_id: str) -> List[DeploymentRecord]:
        """Return a contract's records, newest first (empty if it has none)."""
        return self.store.list(contract_id)

    def current(self, contract_id: str) -> Optional[DeploymentRecord]:
        return next((r for r in self.history(contract_id) if r.is_current), None)

    def set_current(self, record_id: int, admin: Optional[AdminSession]) -> None:
        """
        Mark a record as the current deployment for its contract.

        Raises:
            AuthorizationError: If no admin session is supplied or it is rejected
            RecordNotFoundError: If the record does not exist
            HistoryStoreError: If the store fails
        """
        if admin is None:
            raise AuthorizationError("Setting the current deployment requires an admin session")
        with self._set_current_lock:
            self.store.set_current(record_id, admin)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"


def _json_or_error(response: requests.Response) -> Dict[str, Any]:
    if not response.ok:
        raise HistoryStoreError(f"History store error: {_error_message(response)}")
    try:
        body = response.json()
    except ValueError as e:
        raise HistoryStoreError(f"History store returned invalid JSON: {e}") from e
    if not body.get("success", True):
        raise HistoryStoreError(f"History store error: {body.get('error', 'unknown error')}")
    return body


def _record_from_row(row: Dict[str, Any]) -> DeploymentRecord:
    params = row.get("constructor_params")
    if isinstance(params, str):
        params = json.loads(params)
    return DeploymentRecord(
        id=int(row["id"]),
        contract_id=row["contract_id"],
        contract_name=row["contract_name"],
        address=row["address"],
        network_name=row["network_name"],
        chain_id=int(row["chain_id"]),
        deployer_address=row.get("deployer_address") or "",
        deployed_at=str(row.get("deployed_at") or ""),
        transaction_hash=row.get("transaction_hash"),
        constructor_params=params or {},
        implementation_address=row.get("implementation_address"),
        is_uups=bool(row.get("is_proxy")) or row.get("deployment_type") == "uups_proxy",
        is_current=bool(row.get("is_current")),
    )
