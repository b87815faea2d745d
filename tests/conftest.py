"""Shared pytest fixtures for contract-deployer tests."""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from contract_deployer.artifacts import ArtifactCompiler, ArtifactResolver
from contract_deployer.exceptions import CompilationError
from contract_deployer.history import AdminSession, HistoryRecorder, JsonFileHistoryStore
from contract_deployer.orchestrator import DeploymentOrchestrator
from contract_deployer.signer import Signer, SignerContext
from contract_deployer.types import Invocation, TransactionResult

CALLER = "0x1111111111111111111111111111111111111111"
ADMIN_TOKEN = "test-admin-token"

TOKEN_ABI = [
    {
        "type": "constructor",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "cap", "type": "uint256"},
        ],
    },
    {
        "type": "function",
        "name": "cap",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

DAO_ABI = [
    {"type": "constructor", "stateMutability": "nonpayable", "inputs": []},
    {
        "type": "function",
        "name": "initialize",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "token", "type": "address"},
            {"name": "chainId", "type": "uint32"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "upgradeToAndCall",
        "stateMutability": "payable",
        "inputs": [
            {"name": "newImplementation", "type": "address"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
    },
]

PROXY_ABI = [
    {
        "type": "constructor",
        "stateMutability": "payable",
        "inputs": [
            {"name": "implementation", "type": "address"},
            {"name": "_data", "type": "bytes"},
        ],
    }
]

TOKEN_BYTECODE = "0x" + "6080604052" * 24
DAO_BYTECODE = "0x" + "6080604053" * 24
PROXY_BYTECODE = "0x" + "6080604054" * 24

NAME_MAPPING = {"token": "VotingToken", "mainDAO": "MainDAO"}


class FakeCompiler(ArtifactCompiler):
    """In-memory artifact compiler recording every request."""

    def __init__(self, artifacts: Optional[Dict[str, Dict[str, Any]]] = None):
        self.artifacts = artifacts if artifacts is not None else sample_artifacts()
        self.requests: List[str] = []

    def compile(self, contract_name: str) -> Dict[str, Any]:
        self.requests.append(contract_name)
        if contract_name not in self.artifacts:
            raise CompilationError(f"Compilation failed: unknown contract {contract_name}")
        return self.artifacts[contract_name]


class FakeSigner(Signer):
    """
    Deterministic signer.

    Deployments get sequential addresses 0x...01, 0x...02, ... in submission order.
    Failures are injected per operation key: "constructor" for deployments,
    otherwise the called function name.
    """

    def __init__(self, account: str = CALLER, chain_id: int = 11155111, gas: int = 100_000):
        self._account = account
        self._chain_id = chain_id
        self.gas = gas
        self.estimates: List[Invocation] = []
        self.sent: List[Tuple[Invocation, int]] = []
        self.estimate_errors: Dict[str, Exception] = {}
        self.send_error: Optional[Callable[[Invocation, int], Optional[Exception]]] = None

    def account(self) -> str:
        return self._account

    def chain_id(self) -> int:
        return self._chain_id

    def estimate_gas(self, invocation: Invocation, sender: str) -> int:
        self.estimates.append(invocation)
        error = self.estimate_errors.get(_operation_key(invocation))
        if error is not None:
            raise error
        return self.gas

    def send(self, invocation: Invocation, sender: str, gas: int) -> TransactionResult:
        self.sent.append((invocation, gas))
        if self.send_error is not None:
            error = self.send_error(invocation, len(self.sent))
            if error is not None:
                raise error
        n = len(self.sent)
        return TransactionResult(
            transaction_hash="0x" + f"{n:064x}",
            contract_address=("0x" + f"{n:040x}") if invocation.is_deploy else None,
        )

    @property
    def deployments(self) -> List[Invocation]:
        return [inv for inv, _ in self.sent if inv.is_deploy]

    @property
    def calls(self) -> List[Invocation]:
        return [inv for inv, _ in self.sent if not inv.is_deploy]


def _operation_key(invocation: Invocation) -> str:
    return "constructor" if invocation.is_deploy else invocation.function


def sample_artifacts() -> Dict[str, Dict[str, Any]]:
    return {
        "VotingToken": {"abi": TOKEN_ABI, "bytecode": TOKEN_BYTECODE},
        "MainDAO": {"abi": DAO_ABI, "bytecode": DAO_BYTECODE},
        "UUPSProxy": {"abi": PROXY_ABI, "bytecode": PROXY_BYTECODE},
    }


@pytest.fixture
def fake_compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def resolver(fake_compiler: FakeCompiler) -> ArtifactResolver:
    return ArtifactResolver(fake_compiler, NAME_MAPPING)


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def signer_context(fake_signer: FakeSigner) -> SignerContext:
    return SignerContext.from_signer(fake_signer)


@pytest.fixture
def history_path(tmp_path: Path) -> Path:
    return tmp_path / ".contract-deployer" / "history.json"


@pytest.fixture
def history_store(history_path: Path) -> JsonFileHistoryStore:
    return JsonFileHistoryStore(history_path, admin_token=ADMIN_TOKEN)


@pytest.fixture
def recorder(history_store: JsonFileHistoryStore) -> HistoryRecorder:
    return HistoryRecorder(history_store)


@pytest.fixture
def admin() -> AdminSession:
    return AdminSession(token=ADMIN_TOKEN, username="admin")


@pytest.fixture
def orchestrator(resolver: ArtifactResolver, recorder: HistoryRecorder) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(resolver, recorder=recorder)
