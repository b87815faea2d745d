"""Data types and dataclasses for contract-deployer library."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import BLOCK_EXPLORERS, DEFAULT_BLOCK_EXPLORER
from .parameters import ParamDefault, ParamSpec


class DeploymentMode(Enum):
    """
    Deployment modes. Fixed for the lifetime of a session.

    - STANDARD: plain contract deployed with constructor arguments
    - UUPS_DEPLOY_NEW: implementation + proxy, then initialize
    - UUPS_IMPLEMENTATION_ONLY: implementation only (for a later upgrade)
    - UUPS_UPGRADE_PROXY: point an existing proxy at a new implementation
    """

    STANDARD = "standard"
    UUPS_DEPLOY_NEW = "uups-deploy-new"
    UUPS_IMPLEMENTATION_ONLY = "uups-implementation-only"
    UUPS_UPGRADE_PROXY = "uups-upgrade-proxy"

    @property
    def is_uups(self) -> bool:
        return self is not DeploymentMode.STANDARD


class DeploymentStatus(Enum):
    """Session status. AWAITING_INITIALIZATION is a sub-state of success."""

    IDLE = "idle"
    DEPLOYING = "deploying"
    AWAITING_INITIALIZATION = "awaiting-initialization"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_success(self) -> bool:
        return self in (DeploymentStatus.SUCCESS, DeploymentStatus.AWAITING_INITIALIZATION)


class OperationCategory(Enum):
    """Kind of transaction being sized; selects the fallback gas limit."""

    CONTRACT_DEPLOY = "contract_deploy"
    IMPLEMENTATION_DEPLOY = "implementation_deploy"
    PROXY_DEPLOY = "proxy_deploy"
    INITIALIZE = "initialize"
    UPGRADE = "upgrade"


@dataclass(frozen=True)
class ContractArtifact:
    """Compiled contract: ABI plus creation bytecode."""

    name: str  # Canonical compiler name, e.g. "MainDAO"
    abi: List[Dict[str, Any]]
    bytecode: str  # 0x-prefixed hex

    def entry(self, name: str) -> Optional[Dict[str, Any]]:
        """Return the ABI entry for a function name, or the constructor."""
        for item in self.abi:
            if name == "constructor" and item.get("type") == "constructor":
                return item
            if item.get("type") == "function" and item.get("name") == name:
                return item
        return None


@dataclass(frozen=True)
class ContractTarget:
    """A contract the orchestrator can deploy, keyed by its logical identifier."""

    contract_id: str  # e.g. "mainDAO"
    name: str  # Display name, e.g. "Main DAO"
    # Declared parameter list; when None it is read from the ABI at deploy time
    parameters: Optional[List[ParamSpec]] = None
    # Defaults applied to ABI-derived parameters, by parameter name
    defaults: Dict[str, ParamDefault] = field(default_factory=dict)


@dataclass(frozen=True)
class GasPlan:
    """Gas budget for a single transaction."""

    estimated_units: int  # Simulated estimate, or the fallback when simulation failed
    buffered_units: int  # ceil(estimated_units * 1.2)
    used_fallback: bool = False


@dataclass(frozen=True)
class Invocation:
    """A prepared transaction: either a contract creation or a function call."""

    abi: List[Dict[str, Any]]
    args: List[Any] = field(default_factory=list)
    bytecode: Optional[str] = None  # Set for deployments
    address: Optional[str] = None  # Set for calls
    function: Optional[str] = None  # Set for calls

    @property
    def is_deploy(self) -> bool:
        return self.bytecode is not None

    @classmethod
    def deploy(cls, artifact: ContractArtifact, args: Optional[List[Any]] = None) -> "Invocation":
        return cls(abi=artifact.abi, bytecode=artifact.bytecode, args=list(args or []))

    @classmethod
    def call(
        cls, address: str, abi: List[Dict[str, Any]], function: str, args: Optional[List[Any]] = None
    ) -> "Invocation":
        return cls(abi=abi, address=address, function=function, args=list(args or []))

    def describe(self) -> str:
        if self.is_deploy:
            return "contract creation"
        return f"{self.function}() on {self.address}"


@dataclass(frozen=True)
class TransactionResult:
    """Outcome of a confirmed transaction."""

    transaction_hash: str
    contract_address: Optional[str] = None  # Set for deployments


@dataclass
class DeploymentRecord:
    """Persisted history entry for a confirmed deployment or upgrade."""

    id: int
    contract_id: str
    contract_name: str
    address: str
    network_name: str
    chain_id: int
    deployer_address: str
    deployed_at: str  # ISO-8601 UTC
    transaction_hash: Optional[str] = None
    constructor_params: Dict[str, Any] = field(default_factory=dict)
    implementation_address: Optional[str] = None
    is_uups: bool = False
    is_current: bool = False

    @property
    def explorer_url(self) -> str:
        base = BLOCK_EXPLORERS.get(self.chain_id, DEFAULT_BLOCK_EXPLORER)
        return f"{base}/address/{self.address}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRecord":
        return cls(
            id=int(data["id"]),
            contract_id=data["contract_id"],
            contract_name=data["contract_name"],
            address=data["address"],
            network_name=data["network_name"],
            chain_id=int(data["chain_id"]),
            deployer_address=data["deployer_address"],
            deployed_at=data["deployed_at"],
            transaction_hash=data.get("transaction_hash"),
            constructor_params=data.get("constructor_params") or {},
            implementation_address=data.get("implementation_address"),
            is_uups=bool(data.get("is_uups", False)),
            is_current=bool(data.get("is_current", False)),
        )


@dataclass
class DeploymentSession:
    """Mutable state of the deployment currently being driven by the orchestrator."""

    mode: DeploymentMode
    contract_id: str
    status: DeploymentStatus = DeploymentStatus.IDLE
    deployed_address: Optional[str] = None
    deployed_implementation_address: Optional[str] = None
    transaction_hash: Optional[str] = None
    error_message: Optional[str] = None
    error: Optional[Exception] = None
    constructor_params: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    record: Optional[DeploymentRecord] = None
    # Interface of the implementation behind a freshly deployed proxy,
    # kept so initialize() can validate input without a network call
    implementation_abi: Optional[List[Dict[str, Any]]] = None
    # True once this session deployed an implementation of its own
    implementation_deployed: bool = False
