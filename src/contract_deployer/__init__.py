"""
contract-deployer: Python library for deploying and upgrading proxy-pattern smart contracts
"""

from importlib.metadata import PackageNotFoundError, version

from .artifacts import (
    ArtifactCompiler,
    ArtifactResolver,
    HttpArtifactCompiler,
    PrecompiledArtifactCompiler,
)
from .config import DeployerConfig
from .exceptions import (
    AlreadyInitializedError,
    AuthorizationError,
    CompilationError,
    DeploymentError,
    HistoryStoreError,
    InsufficientFundsError,
    InvalidAddressError,
    InvalidArtifactError,
    InvalidBytecodeError,
    MissingParameterError,
    RecordNotFoundError,
    SessionStateError,
    UnauthorizedUpgradeError,
    UnknownChainError,
    UnmappedContractError,
    UserRejectedError,
)
from .gas import GasEstimator
from .history import (
    AdminSession,
    HistoryRecorder,
    HistoryStore,
    HttpHistoryStore,
    JsonFileHistoryStore,
)
from .orchestrator import DeploymentOrchestrator, build_orchestrator, build_signer
from .parameters import ParamDefault, ParameterBinding, ParamSpec
from .signer import Signer, SignerContext, Web3Signer
from .submitter import TransactionSubmitter
from .types import (
    ContractArtifact,
    ContractTarget,
    DeploymentMode,
    DeploymentRecord,
    DeploymentSession,
    DeploymentStatus,
    GasPlan,
    Invocation,
    OperationCategory,
    TransactionResult,
)

try:
    __version__ = version("contract-deployer")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "DeploymentOrchestrator",
    "build_orchestrator",
    "build_signer",
    "DeployerConfig",
    "ArtifactCompiler",
    "ArtifactResolver",
    "HttpArtifactCompiler",
    "PrecompiledArtifactCompiler",
    "GasEstimator",
    "TransactionSubmitter",
    "Signer",
    "SignerContext",
    "Web3Signer",
    "AdminSession",
    "HistoryRecorder",
    "HistoryStore",
    "HttpHistoryStore",
    "JsonFileHistoryStore",
    "ParamDefault",
    "ParamSpec",
    "ParameterBinding",
    "ContractArtifact",
    "ContractTarget",
    "DeploymentMode",
    "DeploymentRecord",
    "DeploymentSession",
    "DeploymentStatus",
    "GasPlan",
    "Invocation",
    "OperationCategory",
    "TransactionResult",
    "DeploymentError",
    "UnmappedContractError",
    "CompilationError",
    "InvalidArtifactError",
    "MissingParameterError",
    "InvalidAddressError",
    "AlreadyInitializedError",
    "UnauthorizedUpgradeError",
    "UserRejectedError",
    "InsufficientFundsError",
    "InvalidBytecodeError",
    "UnknownChainError",
    "SessionStateError",
    "HistoryStoreError",
    "RecordNotFoundError",
    "AuthorizationError",
]
