"""Story Protocol REST API client (asset existence lookups)."""
import logging
from typing import Any, Dict, Optional

import requests

from ...errors import UpstreamUnavailable
from .pinning import upstream_message

logger = logging.getLogger(__name__)


class StoryApiClient:

    SERVICE = "story_api"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_asset(self, ip_id: str) -> Optional[Dict[str, Any]]:
        """Return the indexed asset for ip_id, or None when Story does not know it."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key

        try:
            response = self.session.post(
                f"{self.base_url}/assets",
                json={"where": {"ipIds": [ip_id]}},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Story API unreachable: {e}", service=self.SERVICE) from e

        if not response.ok:
            message = upstream_message(response)
            logger.error(f"Story API returned {response.status_code} for {ip_id}: {message}")
            raise UpstreamUnavailable(f"Story API lookup failed: {message}", service=self.SERVICE)

        try:
            data = response.json().get("data") or []
        except (ValueError, AttributeError) as e:
            raise UpstreamUnavailable("Story API returned invalid JSON", service=self.SERVICE) from e
        return data[0] if data else None
