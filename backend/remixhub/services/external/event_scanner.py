"""
RemixHub event scanner

Reads OriginalRegistered logs from the RemixHub contract over JSON-RPC
(eth_getLogs). The event carries the cid hash, not the cid, which is why
listings go through the batch lookup afterwards.

    event OriginalRegistered(
        uint256 indexed ipId,
        address indexed owner,
        uint16 presetId,
        bytes32 cidHash
    )
"""
import logging
from typing import Any, Dict, List, Optional

import requests
from eth_utils import is_address, to_checksum_address

from ...errors import UpstreamUnavailable, ValidationError
from ...models.registry import OriginalRegisteredEvent
from ..hashing import event_topic

logger = logging.getLogger(__name__)

ORIGINAL_REGISTERED_SIGNATURE = "OriginalRegistered(uint256,address,uint16,bytes32)"
ORIGINAL_REGISTERED_TOPIC = event_topic(ORIGINAL_REGISTERED_SIGNATURE)


def address_topic(address: str) -> str:
    """Left-pad a 20-byte address into a 32-byte topic."""
    return "0x" + address.lower().replace("0x", "").rjust(64, "0")


def decode_original_registered(log: Dict[str, Any]) -> OriginalRegisteredEvent:
    topics = log.get("topics") or []
    data = (log.get("data") or "0x")[2:]
    if len(topics) < 3 or len(data) < 128:
        raise ValueError("log does not match OriginalRegistered layout")

    return OriginalRegisteredEvent(
        ip_id=str(int(topics[1], 16)),
        owner=to_checksum_address("0x" + topics[2][-40:]),
        preset_id=int(data[0:64], 16),
        cid_hash="0x" + data[64:128].lower(),
        tx_hash=log.get("transactionHash"),
        block_number=int(log.get("blockNumber") or "0x0", 16),
        log_index=int(log.get("logIndex") or "0x0", 16),
    )


class EventScanner:

    SERVICE = "chain_rpc"

    def __init__(
        self,
        rpc_url: str,
        contract_address: Optional[str],
        from_block: int = 0,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.rpc_url = rpc_url
        self.contract_address = contract_address
        self.from_block = from_block
        self.timeout = timeout
        self.session = session or requests.Session()
        self._request_id = 0

    def _rpc(self, method: str, params: List[Any]) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        try:
            response = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            logger.error(f"RPC {method} failed: {e}")
            raise UpstreamUnavailable(f"Chain RPC unreachable: {e}", service=self.SERVICE) from e
        except ValueError as e:
            raise UpstreamUnavailable("Chain RPC returned invalid JSON", service=self.SERVICE) from e

        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.error(f"RPC {method} error: {message}")
            raise UpstreamUnavailable(f"Chain RPC error: {message}", service=self.SERVICE)
        return body.get("result")

    def original_registered(
        self,
        owner: Optional[str] = None,
        from_block: Optional[int] = None,
    ) -> List[OriginalRegisteredEvent]:
        """All OriginalRegistered events, optionally for one owner, in chain order."""
        if not self.contract_address:
            raise UpstreamUnavailable("RemixHub contract address not configured", service=self.SERVICE)

        topics: List[Optional[str]] = [ORIGINAL_REGISTERED_TOPIC]
        if owner:
            if not is_address(owner):
                raise ValidationError(f"Invalid owner address: {owner}")
            topics.extend([None, address_topic(owner)])

        start = self.from_block if from_block is None else from_block
        logs = self._rpc("eth_getLogs", [{
            "address": self.contract_address,
            "fromBlock": hex(start),
            "toBlock": "latest",
            "topics": topics,
        }]) or []

        events: List[OriginalRegisteredEvent] = []
        for log in logs:
            try:
                events.append(decode_original_registered(log))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping undecodable log {log.get('transactionHash')}: {e}")
        events.sort(key=lambda ev: (ev.block_number, ev.log_index))
        logger.info(f"Scanned {len(events)} OriginalRegistered events")
        return events
