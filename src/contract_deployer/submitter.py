"""Transaction submission for contract-deployer library."""

import logging

from .constants import (
    INSUFFICIENT_FUNDS_PATTERNS,
    INVALID_BYTECODE_PATTERNS,
    MAX_RAW_MESSAGE_LENGTH,
    USER_REJECTED_PATTERNS,
)
from .exceptions import (
    DeploymentError,
    InsufficientFundsError,
    InvalidBytecodeError,
    UnknownChainError,
    UserRejectedError,
)
from .signer import SignerContext
from .types import GasPlan, Invocation, TransactionResult

logger = logging.getLogger(__name__)


def truncate_message(message: str, limit: int = MAX_RAW_MESSAGE_LENGTH) -> str:
    if len(message) <= limit:
        return message
    return message[: limit - 3] + "..."


def classify_submission_error(error: Exception, invocation: Invocation) -> DeploymentError:
    """
    Map a signer/chain failure onto the submission error taxonomy.

    Args:
        error: Exception raised by the signer
        invocation: The invocation that was being submitted

    Returns:
        UserRejectedError, InsufficientFundsError, InvalidBytecodeError
        (deployments only) or UnknownChainError
    """
    message = str(error) or error.__class__.__name__

    if any(p.search(message) for p in USER_REJECTED_PATTERNS):
        return UserRejectedError("Transaction rejected: the signer declined the transaction.")
    if any(p.search(message) for p in INSUFFICIENT_FUNDS_PATTERNS):
        return InsufficientFundsError(
            "Insufficient funds: the account needs more native currency to pay for gas."
        )
    if invocation.is_deploy and any(p.search(message) for p in INVALID_BYTECODE_PATTERNS):
        return InvalidBytecodeError(
            f"Deployment failed: invalid bytecode or gas estimation error ({truncate_message(message)})"
        )
    return UnknownChainError(f"Transaction failed: {truncate_message(message)}")


class TransactionSubmitter:
    """Submits prepared invocations through the signer and waits for inclusion."""

    def submit(
        self, invocation: Invocation, plan: GasPlan, context: SignerContext
    ) -> TransactionResult:
        """
        Sign, broadcast and wait for a single transaction.

        Returns:
            TransactionResult; ``contract_address`` is always set for deployments

        Raises:
            UserRejectedError: If the signer declined
            InsufficientFundsError: If the account cannot pay
            InvalidBytecodeError: If the chain rejected a deployment payload
            UnknownChainError: For any other failure
        """
        logger.info("Submitting %s with gas %d", invocation.describe(), plan.buffered_units)
        try:
            result = context.signer.send(invocation, context.account, plan.buffered_units)
        except Exception as e:
            raise classify_submission_error(e, invocation) from e

        if invocation.is_deploy and not result.contract_address:
            raise UnknownChainError(
                f"Transaction {result.transaction_hash} was included but created no contract"
            )

        logger.info(
            "Confirmed %s: tx %s%s",
            invocation.describe(),
            result.transaction_hash,
            f", address {result.contract_address}" if result.contract_address else "",
        )
        return result
