"""Soroban reward distributor - invokes the reward contract for a learner."""

from __future__ import annotations

import logging

from stellar_sdk import Address, Keypair, scval
from stellar_sdk.contract import ContractClientAsync
from stellar_sdk.contract.exceptions import (
    SimulationFailedError,
    TransactionFailedError,
)

from proofdrop.models.records import DistributionResult

log = logging.getLogger(__name__)

# Contract error substrings worth classifying for the caller
_ERROR_CLASSES = {
    "AlreadyGraded": "already_distributed",
    "AlreadyClaimed": "already_distributed",
    "InsufficientFunds": "insufficient_funds",
    "InsufficientBalance": "insufficient_funds",
    "Unauthorized": "unauthorized",
    "NotAdmin": "unauthorized",
}


def _classify_error(exc: Exception) -> str:
    """Try to extract a meaningful error classification from a contract error."""
    msg = str(exc)
    for needle, label in _ERROR_CLASSES.items():
        if needle in msg:
            return label
    return "unknown"


def stellar_address(wallet_address: str) -> Address:
    """Rebuild a Stellar address from its canonical lower-case form.

    StrKey addresses are upper-case base32, so upper-casing the canonical key
    restores the original. Raises ValueError for anything that is not a
    valid account or contract address.
    """
    return Address(wallet_address.strip().upper())


class SorobanRewardDistributor:
    """Submits reward transactions through the generic Soroban contract client.

    The contract function receives ``(caller, recipient, approved)``; the
    configured keypair is both the transaction source and the signer.
    """

    def __init__(
        self,
        contract_id: str,
        rpc_url: str,
        network_passphrase: str,
        keypair: Keypair,
        function_name: str = "grade_submission",
    ) -> None:
        self._keypair = keypair
        self._public_key = keypair.public_key
        self._function_name = function_name
        self._client = ContractClientAsync(
            contract_id=contract_id,
            rpc_url=rpc_url,
            network_passphrase=network_passphrase,
        )

    async def close(self) -> None:
        """Close the underlying RPC session."""
        try:
            await self._client.server.close()
        except Exception as exc:
            log.debug("Ignoring error while closing RPC session: %s", exc)

    async def distribute_reward(self, wallet_address: str, approve: bool) -> DistributionResult:
        """Build, sign, and submit the reward transaction for ``wallet_address``."""
        try:
            recipient = stellar_address(wallet_address)
        except ValueError as exc:
            log.warning("Not a Stellar address: %s (%s)", wallet_address, exc)
            return DistributionResult(success=False, error=f"invalid_recipient: {wallet_address}")

        log.info("Submitting %s for %s", self._function_name, recipient.address[:16])

        try:
            tx = await self._client.invoke(
                self._function_name,
                [
                    scval.to_address(self._public_key),
                    scval.to_address(recipient),
                    scval.to_bool(approve),
                ],
                source=self._public_key,
                signer=self._keypair,
            )
            await tx.simulate()
            await tx.sign_and_submit()

            tx_hash = ""
            if tx.send_transaction_response:
                tx_hash = tx.send_transaction_response.hash

            log.info(
                "%s succeeded for %s (tx=%s)",
                self._function_name,
                recipient.address[:16],
                tx_hash[:16] if tx_hash else "?",
            )
            return DistributionResult(success=True, tx_hash=tx_hash or None)

        except SimulationFailedError as exc:
            error_type = _classify_error(exc)
            log.warning(
                "%s simulation failed for %s: %s (%s)",
                self._function_name, recipient.address[:16], error_type, exc,
            )
            return DistributionResult(success=False, error=f"simulation_failed:{error_type}")

        except TransactionFailedError as exc:
            error_type = _classify_error(exc)
            tx_hash = ""
            if exc.assembled_transaction.send_transaction_response:
                tx_hash = exc.assembled_transaction.send_transaction_response.hash
            log.error(
                "%s tx failed for %s: %s (tx=%s)",
                self._function_name,
                recipient.address[:16],
                error_type,
                tx_hash[:16] if tx_hash else "?",
            )
            return DistributionResult(
                success=False,
                tx_hash=tx_hash or None,
                error=f"tx_failed:{error_type}",
            )

        except Exception as exc:
            log.error(
                "%s unexpected error for %s: %s",
                self._function_name, recipient.address[:16], exc,
            )
            return DistributionResult(success=False, error=str(exc))
