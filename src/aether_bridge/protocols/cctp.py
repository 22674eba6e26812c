"""Circle CCTP burn-and-mint strategy."""

from __future__ import annotations

import logging

from web3 import Web3

from ..config import IRIS_API_PROD, IRIS_API_SANDBOX
from ..constants import Selector
from ..types import Network, ProofArtifact, ProtocolKind, StageVariant, TransferAttempt
from ..utils import address_to_bytes32, encode_call
from .base import BridgeProtocol, ContractCall, records, require

logger = logging.getLogger(__name__)


class CCTPProtocol(BridgeProtocol):
    """Burn on the source TokenMessenger, wait for the IRIS attestation, mint on the destination."""

    kind = ProtocolKind.BURN_MINT
    send_variant = StageVariant.BURN
    proof_variant = StageVariant.ATTESTATION
    finalize_variant = StageVariant.MINT

    def spender(self, source: Network) -> str:
        return require(source, "cctp_token_messenger")

    def build_send(self, attempt: TransferAttempt, sender: str) -> ContractCall:
        messenger = Web3.to_checksum_address(self.spender(attempt.source))
        destination_domain = require(attempt.destination, "cctp_domain")
        token = self._catalog.resolve_address(attempt.asset, attempt.source)
        recipient = self.recipient(attempt, sender)

        data = encode_call(
            Selector.DEPOSIT_FOR_BURN.value,
            ["uint256", "uint32", "bytes32", "address"],
            [attempt.amount_units, destination_domain, address_to_bytes32(recipient), token],
        )
        logger.debug(
            "Stage CCTP [%s]: burn %s units to domain %s for %s",
            attempt.id,
            attempt.amount_units,
            destination_domain,
            recipient,
        )
        return ContractCall(network=attempt.source, to=messenger, data=data, action="burn")

    def fetch_proof(self, attempt: TransferAttempt) -> ProofArtifact | None:
        tx_hash = attempt.artifacts.send_tx
        if not tx_hash:
            return None

        domain = require(attempt.source, "cctp_domain")
        url = f"{self.iris_base_url(attempt.source)}/v2/messages/{domain}?transactionHash={tx_hash}"
        json_resp = self._get_json(url)
        if json_resp is None:
            return None

        for record in records(json_resp, "messages"):
            status = str(record.get("status", "")).lower()
            if status and status != "complete":
                logger.debug("IRIS attestation still %s for %s", status, tx_hash)
                continue

            message = record.get("message")
            attestation = record.get("attestation")
            if (
                isinstance(message, str)
                and isinstance(attestation, str)
                and attestation.startswith("0x")
            ):
                return ProofArtifact(
                    payload=Web3.to_bytes(hexstr=attestation),
                    message=Web3.to_bytes(hexstr=message),
                )
        return None

    def build_finalize(self, attempt: TransferAttempt, sender: str) -> ContractCall | None:
        proof = attempt.artifacts.proof
        if proof is None:
            return None
        transmitter = Web3.to_checksum_address(
            require(attempt.destination, "cctp_message_transmitter")
        )
        data = encode_call(
            Selector.RECEIVE_MESSAGE.value, ["bytes", "bytes"], [proof.message, proof.payload]
        )
        return ContractCall(network=attempt.destination, to=transmitter, data=data, action="mint")

    def iris_base_url(self, source: Network) -> str:
        configured = self._config.proof.iris_base_url
        if configured:
            return configured.rstrip("/")
        return IRIS_API_SANDBOX if source.is_testnet else IRIS_API_PROD
