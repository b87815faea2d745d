"""Gas estimation for contract-deployer library."""

import logging

from .constants import (
    ALREADY_INITIALIZED_PATTERNS,
    FALLBACK_GAS,
    GAS_BUFFER_PERCENT,
    UNAUTHORIZED_PATTERNS,
)
from .exceptions import AlreadyInitializedError, UnauthorizedUpgradeError
from .signer import SignerContext
from .types import GasPlan, Invocation, OperationCategory

logger = logging.getLogger(__name__)


def apply_buffer(units: int) -> int:
    """
    Add the safety buffer to a gas amount.

    Args:
        units: Estimated or fallback gas

    Returns:
        ceil(units * 1.2), computed in integers
    """
    return (units * (100 + GAS_BUFFER_PERCENT) + 99) // 100


def fallback_gas(category: OperationCategory) -> int:
    return FALLBACK_GAS[category.value]


def check_revert_reason(reason: str, category: OperationCategory) -> None:
    """
    Raise for revert reasons that make the transaction impossible.

    Only upgrades are reported as an ownership problem; other operations
    get a message naming the operation.

    Raises:
        AlreadyInitializedError: If the target proxy is already initialized
        UnauthorizedUpgradeError: If the caller is not authorized
    """
    if any(p.search(reason) for p in ALREADY_INITIALIZED_PATTERNS):
        raise AlreadyInitializedError(f"Contract is already initialized: {reason}")
    if any(p.search(reason) for p in UNAUTHORIZED_PATTERNS):
        if category is OperationCategory.UPGRADE:
            raise UnauthorizedUpgradeError(
                f"Caller is not authorized to upgrade (not the owner): {reason}"
            )
        raise UnauthorizedUpgradeError(f"Caller is not authorized for {category.value}: {reason}")


class GasEstimator:
    """Sizes transactions by simulation, falling back to fixed limits per operation."""

    def estimate(
        self,
        invocation: Invocation,
        context: SignerContext,
        category: OperationCategory,
    ) -> GasPlan:
        """
        Compute the gas plan for an invocation.

        Estimation failure alone is not fatal: unrecognized failures use the
        category's fallback limit and mark the plan ``used_fallback``.

        Raises:
            AlreadyInitializedError: If simulation reverts with an "already initialized" reason
            UnauthorizedUpgradeError: If simulation reverts with an authorization reason
        """
        try:
            estimated = int(context.signer.estimate_gas(invocation, context.account))
            used_fallback = False
        except Exception as e:
            check_revert_reason(str(e), category)
            estimated = fallback_gas(category)
            used_fallback = True
            logger.warning(
                "Gas estimation failed for %s (%s), using fixed limit %d",
                invocation.describe(),
                e,
                estimated,
            )

        plan = GasPlan(
            estimated_units=estimated,
            buffered_units=apply_buffer(estimated),
            used_fallback=used_fallback,
        )
        logger.info(
            "Gas plan for %s: %d (estimate %d%s)",
            invocation.describe(),
            plan.buffered_units,
            plan.estimated_units,
            ", fallback" if used_fallback else "",
        )
        return plan
