"""EVM address validation and normalisation."""

from __future__ import annotations

import re

from backend_megarank.core.exceptions import InvalidAddressError

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def normalize_address(address: str | None) -> str:
    """Return the lowercase address; raise InvalidAddressError when malformed."""
    candidate = (address or "").strip()
    if not ADDRESS_RE.match(candidate):
        raise InvalidAddressError(candidate)
    return candidate.lower()
