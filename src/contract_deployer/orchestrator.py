"""Deployment state machine for contract-deployer library."""

import logging
from typing import Any, Dict, Mapping, Optional

from .artifacts import ArtifactResolver, HttpArtifactCompiler, PrecompiledArtifactCompiler
from .config import DeployerConfig
from .constants import PROXY_CONTRACT_NAME, UUPS_UPGRADE_ABI
from .exceptions import (
    DeploymentError,
    InvalidArtifactError,
    SessionStateError,
    UnknownChainError,
)
from .gas import GasEstimator
from .history import HistoryRecorder, HttpHistoryStore, JsonFileHistoryStore
from .parameters import ParamDefault, ParameterBinding, require_address
from .signer import SignerContext, Web3Signer
from .submitter import TransactionSubmitter, truncate_message
from .types import (
    ContractArtifact,
    ContractTarget,
    DeploymentMode,
    DeploymentSession,
    DeploymentStatus,
    Invocation,
    OperationCategory,
    TransactionResult,
)

logger = logging.getLogger(__name__)

# Proxy constructor and upgrade calls carry no initializer payload
EMPTY_CALL_DATA = b""


class DeploymentOrchestrator:
    """
    Drives one deployment session at a time through its transaction sequence.

    Every step waits for the previous one to confirm, because later steps take
    addresses produced by earlier ones. Step failures end the session in
    FAILED with the error message kept on the session; addresses confirmed
    before the failure stay on the session so they can be reused.
    """

    def __init__(
        self,
        resolver: ArtifactResolver,
        estimator: Optional[GasEstimator] = None,
        submitter: Optional[TransactionSubmitter] = None,
        recorder: Optional[HistoryRecorder] = None,
    ):
        self.resolver = resolver
        self.estimator = estimator or GasEstimator()
        self.submitter = submitter or TransactionSubmitter()
        self.recorder = recorder
        self._session: Optional[DeploymentSession] = None
        self._target: Optional[ContractTarget] = None

    @property
    def session(self) -> Optional[DeploymentSession]:
        return self._session

    @property
    def status(self) -> DeploymentStatus:
        if self._session is None:
            return DeploymentStatus.IDLE
        return self._session.status

    def dismiss(self) -> None:
        """
        Drop the current session and return to IDLE.

        Raises:
            SessionStateError: If a deployment is in progress
        """
        if self.status is DeploymentStatus.DEPLOYING:
            raise SessionStateError("Cannot dismiss a session while it is deploying")
        if self.status is DeploymentStatus.AWAITING_INITIALIZATION:
            logger.warning(
                "Dismissing session with uninitialized proxy at %s", self._session.deployed_address
            )
        self._session = None
        self._target = None

    def deploy(
        self,
        target: ContractTarget,
        mode: DeploymentMode,
        context: SignerContext,
        params: Optional[Mapping[str, Any]] = None,
        proxy_address: Optional[str] = None,
        implementation_address: Optional[str] = None,
        use_existing_implementation: bool = False,
    ) -> DeploymentSession:
        """
        Start a new session and run the mode's transaction sequence.

        Args:
            target: Contract to deploy
            mode: Deployment mode
            context: Signer identity captured at session start
            params: Constructor parameters by name (STANDARD mode)
            proxy_address: Existing proxy (UUPS_UPGRADE_PROXY)
            implementation_address: Existing implementation (UUPS_UPGRADE_PROXY
                                    with use_existing_implementation)
            use_existing_implementation: Upgrade to implementation_address
                                         instead of deploying a new one

        Returns:
            The finished session (SUCCESS, AWAITING_INITIALIZATION or FAILED)

        Raises:
            SessionStateError: If another session is still deploying
        """
        if self.status is DeploymentStatus.DEPLOYING:
            raise SessionStateError("A deployment is already in progress")
        if self._session is not None:
            self.dismiss()

        session = DeploymentSession(
            mode=mode,
            contract_id=target.contract_id,
            status=DeploymentStatus.DEPLOYING,
            constructor_params=dict(params or {}),
        )
        self._session = session
        self._target = target
        logger.info(
            "Starting %s of %s on %s as %s",
            mode.value,
            target.contract_id,
            context.network_name,
            context.account,
        )

        try:
            match mode:
                case DeploymentMode.STANDARD:
                    self._standard_deploy(session, target, context, params or {})
                case DeploymentMode.UUPS_DEPLOY_NEW:
                    self._uups_deploy_new(session, target, context)
                case DeploymentMode.UUPS_IMPLEMENTATION_ONLY:
                    self._uups_implementation_only(session, target, context)
                case DeploymentMode.UUPS_UPGRADE_PROXY:
                    self._uups_upgrade_proxy(
                        session,
                        target,
                        context,
                        proxy_address,
                        implementation_address,
                        use_existing_implementation,
                    )
        except DeploymentError as e:
            self._fail(session, e)
        except Exception as e:
            logger.exception("Unexpected error during %s of %s", mode.value, target.contract_id)
            self._fail(session, _unexpected_error(e))

        return session

    def initialize(
        self, params: Mapping[str, Any], context: SignerContext
    ) -> DeploymentSession:
        """
        Call ``initialize`` on the proxy deployed by UUPS_DEPLOY_NEW.

        Arguments are placed in the initializer's declared input order.
        Missing parameters are reported before any network call and leave
        the session awaiting initialization so the input can be corrected.

        Raises:
            SessionStateError: If the session is not awaiting initialization
        """
        session = self._session
        if session is None or session.status is not DeploymentStatus.AWAITING_INITIALIZATION:
            raise SessionStateError("No deployed proxy is awaiting initialization")

        entry = _find_function(session.implementation_abi or [], "initialize")
        if entry is None:
            self._fail(
                session,
                InvalidArtifactError(f"{session.contract_id} implementation has no initialize function"),
            )
            return session

        binding = ParameterBinding.from_abi_entry(entry, self._defaults_for(self._target))
        try:
            args = binding.bind(params, context.account, context.chain_id)
        except DeploymentError as e:
            session.error = e
            session.error_message = str(e)
            logger.info("Initialize input rejected: %s", e)
            return session

        session.status = DeploymentStatus.DEPLOYING
        session.error = None
        session.error_message = None
        try:
            invocation = Invocation.call(
                session.deployed_address, session.implementation_abi, "initialize", args
            )
            result = self._execute(invocation, context, OperationCategory.INITIALIZE)
        except DeploymentError as e:
            self._fail(session, e)
            return session
        except Exception as e:
            logger.exception("Unexpected error initializing %s", session.deployed_address)
            self._fail(session, _unexpected_error(e))
            return session

        session.constructor_params = binding.resolve(params, context.account, context.chain_id)
        session.transaction_hash = result.transaction_hash
        session.status = DeploymentStatus.SUCCESS
        logger.info("Initialized proxy %s", session.deployed_address)
        return session

    def _standard_deploy(
        self,
        session: DeploymentSession,
        target: ContractTarget,
        context: SignerContext,
        params: Mapping[str, Any],
    ) -> None:
        if target.parameters is not None:
            binding = ParameterBinding(target.parameters)
            binding.validate(params, context.account, context.chain_id)
            artifact = self.resolver.resolve(target.contract_id)
        else:
            artifact = self.resolver.resolve(target.contract_id)
            binding = ParameterBinding.from_abi_entry(artifact.entry("constructor"), target.defaults)

        args = binding.bind(params, context.account, context.chain_id)
        session.constructor_params = binding.resolve(params, context.account, context.chain_id)

        result = self._execute(
            Invocation.deploy(artifact, args), context, OperationCategory.CONTRACT_DEPLOY
        )
        session.deployed_address = result.contract_address
        session.transaction_hash = result.transaction_hash

        self._record(session, target, context)
        session.status = DeploymentStatus.SUCCESS

    def _uups_deploy_new(
        self, session: DeploymentSession, target: ContractTarget, context: SignerContext
    ) -> None:
        implementation = self.resolver.resolve(target.contract_id)
        implementation_address = self._deploy_implementation(session, implementation, context)

        proxy = self.resolver.fetch(PROXY_CONTRACT_NAME)
        result = self._execute(
            Invocation.deploy(proxy, [implementation_address, EMPTY_CALL_DATA]),
            context,
            OperationCategory.PROXY_DEPLOY,
        )
        session.deployed_address = result.contract_address
        session.transaction_hash = result.transaction_hash
        session.implementation_abi = implementation.abi
        session.constructor_params = {}

        self._record(session, target, context)
        session.status = DeploymentStatus.AWAITING_INITIALIZATION
        logger.info(
            "Proxy %s deployed for implementation %s; awaiting initialize",
            session.deployed_address,
            implementation_address,
        )

    def _uups_implementation_only(
        self, session: DeploymentSession, target: ContractTarget, context: SignerContext
    ) -> None:
        implementation = self.resolver.resolve(target.contract_id)
        self._deploy_implementation(session, implementation, context)
        session.deployed_address = session.deployed_implementation_address
        session.constructor_params = {}

        self._record(session, target, context)
        session.status = DeploymentStatus.SUCCESS

    def _uups_upgrade_proxy(
        self,
        session: DeploymentSession,
        target: ContractTarget,
        context: SignerContext,
        proxy_address: Optional[str],
        implementation_address: Optional[str],
        use_existing_implementation: bool,
    ) -> None:
        proxy_address = require_address(proxy_address, "proxy address")
        if use_existing_implementation:
            new_implementation = require_address(implementation_address, "implementation address")
            session.deployed_implementation_address = new_implementation
        else:
            implementation = self.resolver.resolve(target.contract_id)
            new_implementation = self._deploy_implementation(session, implementation, context)

        result = self._execute(
            Invocation.call(
                proxy_address,
                UUPS_UPGRADE_ABI,
                "upgradeToAndCall",
                [new_implementation, EMPTY_CALL_DATA],
            ),
            context,
            OperationCategory.UPGRADE,
        )
        session.deployed_address = proxy_address
        session.transaction_hash = result.transaction_hash
        session.constructor_params = {}

        self._record(session, target, context)
        session.status = DeploymentStatus.SUCCESS
        logger.info("Upgraded proxy %s to implementation %s", proxy_address, new_implementation)

    def _deploy_implementation(
        self, session: DeploymentSession, artifact: ContractArtifact, context: SignerContext
    ) -> str:
        # UUPS implementations take no constructor arguments
        result = self._execute(
            Invocation.deploy(artifact), context, OperationCategory.IMPLEMENTATION_DEPLOY
        )
        session.deployed_implementation_address = result.contract_address
        session.implementation_deployed = True
        logger.info("Implementation %s deployed at %s", artifact.name, result.contract_address)
        return result.contract_address

    def _execute(
        self, invocation: Invocation, context: SignerContext, category: OperationCategory
    ) -> TransactionResult:
        plan = self.estimator.estimate(invocation, context, category)
        return self.submitter.submit(invocation, plan, context)

    def _record(
        self, session: DeploymentSession, target: ContractTarget, context: SignerContext
    ) -> None:
        if self.recorder is None:
            return
        record = self.recorder.record(
            contract_id=target.contract_id,
            contract_name=target.name,
            address=session.deployed_address,
            network_name=context.network_name,
            chain_id=context.chain_id,
            deployer_address=context.account,
            transaction_hash=session.transaction_hash,
            constructor_params=session.constructor_params,
            implementation_address=session.deployed_implementation_address,
            is_uups=session.mode.is_uups,
        )
        if record is None:
            session.warnings.append(
                "Deployment succeeded but could not be saved to the deployment history"
            )
        session.record = record

    def _fail(self, session: DeploymentSession, error: DeploymentError) -> None:
        session.status = DeploymentStatus.FAILED
        session.error = error
        session.error_message = str(error)

        if session.implementation_deployed and not session.deployed_address:
            session.warnings.append(
                f"Implementation deployed at {session.deployed_implementation_address} is not "
                "attached to a proxy; reuse it as an existing implementation instead of redeploying"
            )
        logger.error("Deployment of %s failed: %s", session.contract_id, error)

    @staticmethod
    def _defaults_for(target: Optional[ContractTarget]) -> Dict[str, ParamDefault]:
        if target is None:
            return {}
        defaults = dict(target.defaults)
        for spec in target.parameters or []:
            if spec.default is not None:
                defaults[spec.name] = spec.default
        return defaults


def _unexpected_error(error: Exception) -> UnknownChainError:
    wrapped = UnknownChainError(
        f"Unexpected error: {truncate_message(str(error) or type(error).__name__)}"
    )
    wrapped.__cause__ = error
    return wrapped


def _find_function(abi, name: str) -> Optional[Dict[str, Any]]:
    for item in abi:
        if item.get("type") == "function" and item.get("name") == name:
            return item
    return None


def build_orchestrator(config: Optional[DeployerConfig] = None) -> DeploymentOrchestrator:
    """
    Wire an orchestrator from configuration.

    Args:
        config: Settings (defaults to DeployerConfig.from_env())

    Returns:
        DeploymentOrchestrator with resolver, estimator, submitter and recorder

    Raises:
        ValueError: If the configuration is invalid
    """
    if config is None:
        config = DeployerConfig.from_env()
    config.validate()

    if config.artifacts_path:
        compiler = PrecompiledArtifactCompiler(config.artifacts_path)
    else:
        compiler = HttpArtifactCompiler(config.compiler_url, timeout=config.request_timeout)

    if config.history_url:
        store = HttpHistoryStore(config.history_url, timeout=config.request_timeout)
    else:
        store = JsonFileHistoryStore(config.history_path, admin_token=config.admin_token)

    return DeploymentOrchestrator(
        resolver=ArtifactResolver(compiler),
        estimator=GasEstimator(),
        submitter=TransactionSubmitter(),
        recorder=HistoryRecorder(store),
    )


def build_signer(
    config: DeployerConfig,
    private_key: Optional[str] = None,
    account: Optional[str] = None,
) -> Web3Signer:
    """
    Connect a web3.py signer to the configured RPC endpoint.

    Args:
        config: Settings with rpc_url set
        private_key: Key to sign locally with (otherwise the node's account signs)
        account: Node-managed sender address, used when no private key is given

    Raises:
        ValueError: If no RPC endpoint is configured
    """
    if not config.rpc_url:
        raise ValueError("rpc_url is required to build a signer")
    return Web3Signer.from_rpc_url(config.rpc_url, private_key=private_key, account=account)
