"""Artifact resolution for contract-deployer library."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import requests

from .constants import CONTRACT_NAME_MAPPING, MIN_BYTECODE_LENGTH
from .exceptions import CompilationError, InvalidArtifactError, UnmappedContractError
from .types import ContractArtifact

logger = logging.getLogger(__name__)


class ArtifactCompiler:
    """Source of compiled contract artifacts, addressed by canonical name."""

    def compile(self, contract_name: str) -> Dict[str, Any]:
        """
        Return the raw artifact for a contract.

        Returns:
            Dictionary with "abi" and "bytecode" keys

        Raises:
            CompilationError: If the compiler reports a failure
        """
        raise NotImplementedError


class HttpArtifactCompiler(ArtifactCompiler):
    """Artifact compiler service reached over HTTP (POST /api/compile)."""

    def __init__(self, base_url: str, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def compile(self, contract_name: str) -> Dict[str, Any]:
        try:
            response = requests.post(
                f"{self.base_url}/api/compile",
                json={"contractName": contract_name},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise CompilationError(f"Compilation failed: {e}") from e

        if not response.ok:
            raise CompilationError(
                f"Compilation failed: {_error_from_response(response)}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise CompilationError(f"Compilation failed: invalid response body ({e})") from e


class PrecompiledArtifactCompiler(ArtifactCompiler):
    """
    Artifacts read from a pre-compiled JSON file.

    The file maps canonical contract names to {"abi": [...], "bytecode": "0x..."}.
    It is loaded lazily on first use.
    """

    def __init__(self, artifacts_path: Union[Path, str]):
        self.artifacts_path = Path(artifacts_path)
        self._artifacts: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._artifacts is None:
            try:
                with open(self.artifacts_path) as f:
                    self._artifacts = json.load(f)
            except FileNotFoundError as e:
                raise CompilationError(
                    f"Pre-compiled artifacts not found at {self.artifacts_path}"
                ) from e
            except json.JSONDecodeError as e:
                raise CompilationError(
                    f"Pre-compiled artifacts at {self.artifacts_path} are corrupted: {e}"
                ) from e
            logger.info("Loaded %d pre-compiled contracts", len(self._artifacts))
        return self._artifacts

    def compile(self, contract_name: str) -> Dict[str, Any]:
        artifacts = self._load()
        if contract_name not in artifacts:
            available = ", ".join(sorted(artifacts))
            raise CompilationError(f"Unknown contract: {contract_name}. Available: {available}")

        artifact = artifacts[contract_name]
        bytecode = artifact.get("bytecode")
        if not bytecode or bytecode == "0x":
            raise CompilationError(
                f"No bytecode in pre-compiled artifact for {contract_name}. Contract may be abstract."
            )
        return {"abi": artifact.get("abi", []), "bytecode": bytecode}


class ArtifactResolver:
    """Maps logical contract identifiers to canonical names and fetches their artifacts."""

    def __init__(
        self,
        compiler: ArtifactCompiler,
        name_mapping: Optional[Mapping[str, str]] = None,
    ):
        self.compiler = compiler
        self.name_mapping = dict(CONTRACT_NAME_MAPPING if name_mapping is None else name_mapping)

    def canonical_name(self, contract_id: str) -> str:
        """
        Look up the compiler name for a contract identifier.

        Raises:
            UnmappedContractError: If the identifier has no mapping
        """
        try:
            return self.name_mapping[contract_id]
        except KeyError:
            raise UnmappedContractError(
                f"No compiler mapping found for contract: {contract_id}"
            ) from None

    def resolve(self, contract_id: str) -> ContractArtifact:
        """
        Resolve a contract identifier to its compiled artifact.

        Raises:
            UnmappedContractError: If the identifier has no mapping
            CompilationError: If the compiler reports a failure
            InvalidArtifactError: If the returned bytecode is near-empty
        """
        return self.fetch(self.canonical_name(contract_id))

    def fetch(self, contract_name: str) -> ContractArtifact:
        """
        Fetch an artifact by canonical name (used directly for the proxy template).

        Raises:
            CompilationError: If the compiler reports a failure
            InvalidArtifactError: If the returned bytecode is near-empty
        """
        logger.info("Fetching artifact for %s", contract_name)
        raw = self.compiler.compile(contract_name)

        bytecode = raw.get("bytecode") or ""
        if isinstance(bytecode, dict):
            # solc standard-json shape: {"object": "..."}
            bytecode = bytecode.get("object") or ""
        if bytecode and not bytecode.startswith("0x"):
            bytecode = "0x" + bytecode

        if len(bytecode) < MIN_BYTECODE_LENGTH:
            raise InvalidArtifactError(
                f"Invalid bytecode returned from compilation of {contract_name}"
            )

        abi = raw.get("abi") or []
        logger.info(
            "Resolved %s: %d ABI entries, %d bytecode chars", contract_name, len(abi), len(bytecode)
        )
        return ContractArtifact(name=contract_name, abi=abi, bytecode=bytecode)


def _error_from_response(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return "Unknown error"
