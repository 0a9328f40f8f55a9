"""Header construction for destination requests."""

from collections.abc import Mapping
from typing import Any


class HeaderBuilder:
    """Build outbound headers from the inbound ones."""

    def build_destination_headers(self, headers: Mapping[str, Any]) -> dict[str, str]:
        """Always send JSON; pass the authorization credential through when present."""
        outbound: dict[str, str] = {"content-type": "application/json"}
        credential = self.find_authorization(headers)
        if credential:
            outbound["authorization"] = credential
        return outbound

    @staticmethod
    def find_authorization(headers: Mapping[str, Any]) -> str | None:
        """Case-insensitive lookup of the Authorization header."""
        for key, value in headers.items():
            if key.lower() == "authorization":
                return str(value)
        return None
