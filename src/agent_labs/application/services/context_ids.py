"""
agent_labs.application.services.context_ids - Signed conversation identifiers.

A signed context id has the form "username|<unix-ms>" and travels with
an HMAC-SHA256 signature (base64) so the server can tell which
conversations a client is allowed to continue.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import time
from typing import Optional

from agent_labs.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ContextIdSigner:
    """Generates and validates context id signatures."""

    def __init__(self, signing_key: str):
        if not signing_key or not signing_key.strip():
            raise ConfigurationError(
                "CONTEXT_ID_SIGNING_KEY is not configured (security section missing)"
            )
        self._key = signing_key.encode("utf-8")

    def generate_signature(self, context_id: str) -> str:
        if not context_id or not context_id.strip():
            raise ValueError("Context ID cannot be null or empty.")
        digest = hmac.new(self._key, context_id.encode("utf-8"), hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")

    def validate_signature(self, context_id: str, signature: str) -> bool:
        if not context_id or not context_id.strip():
            return False
        if not signature or not signature.strip():
            return False
        expected = self.generate_signature(context_id)
        valid = hmac.compare_digest(expected, signature)
        if not valid:
            logger.warning("Invalid signature for context id %s", context_id)
        return valid

    @staticmethod
    def extract_username(context_id: str) -> Optional[str]:
        if not context_id or "|" not in context_id:
            return None
        username = context_id.split("|", 1)[0].strip()
        return username or None

    def new_context_id(self, username: str) -> tuple[str, str]:
        """Issue a fresh "username|timestamp" id and its signature."""
        if not username or not username.strip():
            raise ValueError("Username cannot be null or empty.")
        context_id = f"{username.strip()}|{int(time.time() * 1000)}"
        return context_id, self.generate_signature(context_id)
