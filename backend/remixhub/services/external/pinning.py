"""
Pinata pinning client

Pins design files and metadata JSON to IPFS and reads pinned JSON back
through a gateway. Content is immutable and addressed by the returned cid.
"""
import logging
from typing import Any, Dict, Optional

import requests

from ...errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


def upstream_message(response: requests.Response) -> str:
    """Best available error text from an upstream response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error") or body.get("message")
        if isinstance(error, dict):
            error = error.get("details") or error.get("reason")
        if error:
            return str(error)
    return str(body)


class PinataClient:
    """
    Thin wrapper over the Pinata pinning API.

    Usage:
        pinata = PinataClient(jwt, timeout=30)
        cid = pinata.pin_json({"title": "Logo"})
    """

    SERVICE = "pinata"

    def __init__(
        self,
        jwt: Optional[str],
        api_url: str = "https://api.pinata.cloud",
        gateway_url: str = "https://gateway.pinata.cloud/ipfs",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.jwt = jwt
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _auth_headers(self) -> Dict[str, str]:
        if not self.jwt:
            raise UpstreamUnavailable(
                "Missing PINATA_JWT in environment. Set PINATA_JWT to enable IPFS uploads.",
                service=self.SERVICE,
            )
        return {"Authorization": f"Bearer {self.jwt}"}

    def _post(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        headers = self._auth_headers()
        try:
            response = self.session.post(
                f"{self.api_url}{path}", headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"Pinata request to {path} failed: {e}")
            raise UpstreamUnavailable(f"Pinning service unreachable: {e}", service=self.SERVICE) from e

        if not response.ok:
            message = upstream_message(response)
            logger.error(f"Pinata {path} returned {response.status_code}: {message}")
            raise UpstreamUnavailable(f"Pinning failed: {message}", service=self.SERVICE)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable("Pinning service returned invalid JSON", service=self.SERVICE) from e

    @staticmethod
    def _cid_from(body: Dict[str, Any]) -> str:
        cid = body.get("IpfsHash")
        if not cid:
            raise UpstreamUnavailable("Pinning response did not include IpfsHash", service=PinataClient.SERVICE)
        return cid

    def pin_file(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> str:
        """Pin a binary blob. Returns its cid."""
        files = {"file": (filename, content, content_type or "application/octet-stream")}
        body = self._post("/pinning/pinFileToIPFS", files=files)
        cid = self._cid_from(body)
        logger.info(f"Pinned file {filename}: {cid}")
        return cid

    def pin_json(self, document: Dict[str, Any], name: Optional[str] = None) -> str:
        """Pin a JSON document. Returns its cid."""
        payload: Dict[str, Any] = {"pinataContent": document}
        if name:
            payload["pinataMetadata"] = {"name": name}
        body = self._post("/pinning/pinJSONToIPFS", json=payload)
        cid = self._cid_from(body)
        logger.info(f"Pinned metadata JSON: {cid}")
        return cid

    def fetch_json(self, cid: str) -> Dict[str, Any]:
        """Read a pinned JSON document through the gateway."""
        try:
            response = self.session.get(f"{self.gateway_url}/{cid}", timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Gateway fetch failed for {cid}: {e}", service="ipfs_gateway") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"Gateway returned non-JSON for {cid}", service="ipfs_gateway") from e
