"""
Ledger registration client

Registration on Story Protocol is performed by a signing gateway that
holds the account credential and waits for finalization. This service
only sends the metadata reference (and, for derivatives, the parent
ipId) and receives the ipId and transaction hash back.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from ...errors import UpstreamUnavailable
from ...models.registry import LedgerRegistration
from .pinning import upstream_message

logger = logging.getLogger(__name__)

# Story Protocol wrapped IP token, used as the license currency
WIP_TOKEN_ADDRESS = "0x1514000000000000000000000000000000000000"


def commercial_remix_terms(rev_share: int, minting_fee: int = 0) -> Dict[str, Any]:
    """PIL commercial-remix license terms attached to every original."""
    return {
        "flavor": "commercialRemix",
        "commercialRevShare": rev_share,
        "defaultMintingFee": str(minting_fee),
        "currency": WIP_TOKEN_ADDRESS,
    }


class LedgerClient(ABC):
    """Registers originals and derivatives on the IP ledger."""

    @abstractmethod
    def register_ip(self, metadata_cid: str, cid_hash: str, title: Optional[str] = None) -> LedgerRegistration:
        ...

    @abstractmethod
    def register_derivative(self, parent_ip_id: str, child_cid: str, cid_hash: str) -> LedgerRegistration:
        ...


class GatewayLedgerClient(LedgerClient):
    """LedgerClient backed by the HTTP registration gateway."""

    SERVICE = "ledger"

    def __init__(
        self,
        base_url: Optional[str],
        token: Optional[str] = None,
        chain_id: str = "aeneid",
        spg_nft_contract: Optional[str] = None,
        rev_share: int = 10,
        timeout: float = 120.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.token = token
        self.chain_id = chain_id
        self.spg_nft_contract = spg_nft_contract
        self.rev_share = rev_share
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, path: str, payload: Dict[str, Any]) -> LedgerRegistration:
        if not self.base_url:
            raise UpstreamUnavailable("LEDGER_GATEWAY_URL is not configured", service=self.SERVICE)

        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.session.post(
                f"{self.base_url}{path}", json=payload, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Ledger gateway {path} unreachable: {e}")
            raise UpstreamUnavailable(f"Ledger gateway unreachable: {e}", service=self.SERVICE) from e

        if not response.ok:
            message = upstream_message(response)
            logger.error(f"Ledger gateway {path} returned {response.status_code}: {message}")
            raise UpstreamUnavailable(f"Ledger registration failed: {message}", service=self.SERVICE)

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamUnavailable("Ledger gateway returned invalid JSON", service=self.SERVICE) from e

        ip_id = body.get("ipId")
        tx_hash = body.get("txHash")
        if not ip_id or not tx_hash:
            raise UpstreamUnavailable(
                "Ledger gateway response missing ipId or txHash", service=self.SERVICE
            )
        return LedgerRegistration(ip_id=str(ip_id), tx_hash=str(tx_hash))

    def register_ip(self, metadata_cid: str, cid_hash: str, title: Optional[str] = None) -> LedgerRegistration:
        payload = {
            "chainId": self.chain_id,
            "spgNftContract": self.spg_nft_contract,
            "allowDuplicates": True,
            "licenseTerms": [commercial_remix_terms(self.rev_share)],
            "ipMetadata": {
                "ipMetadataURI": f"ipfs://{metadata_cid}",
                "ipMetadataHash": cid_hash,
                "nftMetadataURI": f"ipfs://{metadata_cid}",
                "nftMetadataHash": cid_hash,
            },
            "title": title,
        }
        registration = self._post("/ip-assets", payload)
        logger.info(f"IP registered: ip_id={registration.ip_id} tx={registration.tx_hash}")
        return registration

    def register_derivative(self, parent_ip_id: str, child_cid: str, cid_hash: str) -> LedgerRegistration:
        payload = {
            "chainId": self.chain_id,
            "spgNftContract": self.spg_nft_contract,
            "parentIpIds": [parent_ip_id],
            "ipMetadata": {
                "ipMetadataURI": f"ipfs://{child_cid}",
                "ipMetadataHash": cid_hash,
                "nftMetadataURI": f"ipfs://{child_cid}",
                "nftMetadataHash": cid_hash,
            },
        }
        registration = self._post("/ip-assets/derivatives", payload)
        logger.info(
            f"Derivative registered: parent={parent_ip_id} ip_id={registration.ip_id} tx={registration.tx_hash}"
        )
        return registration
