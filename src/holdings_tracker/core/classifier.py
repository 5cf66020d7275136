"""Address format classification."""

import re

from holdings_tracker.core.models import AddressClassification
from holdings_tracker.data import get_evm_chains

BASE58 = "1-9A-HJ-NP-Za-km-z"

BITCOIN_LEGACY_RE = re.compile(rf"^1[{BASE58}]{{25,34}}$")
BITCOIN_P2SH_RE = re.compile(rf"^3[{BASE58}]{{25,34}}$")
BITCOIN_BECH32_RE = re.compile(r"^bc1[a-z0-9]{39,59}$")
RIPPLE_RE = re.compile(rf"^r[{BASE58}]{{24,34}}$")
SOLANA_RE = re.compile(rf"^[{BASE58}]{{32,44}}$")
EVM_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

EVM_FORMAT_LABEL = "EVM (Ethereum/Polygon/BSC/Avalanche/Cronos)"


def is_bitcoin_address(address: str) -> bool:
    """Legacy P2PKH (1...), P2SH (3...) or Bech32 (bc1...)."""
    return bool(
        BITCOIN_LEGACY_RE.match(address) or BITCOIN_P2SH_RE.match(address) or BITCOIN_BECH32_RE.match(address)
    )


def is_ripple_address(address: str) -> bool:
    return bool(RIPPLE_RE.match(address))


def is_cardano_address(address: str) -> bool:
    """Shelley-era mainnet address."""
    return address.startswith("addr1") and 58 <= len(address) <= 104


def is_solana_address(address: str) -> bool:
    """Base58, 32-44 characters, and not shaped like a Bitcoin address."""
    if address.startswith(("1", "3", "bc1")):
        return False
    return bool(SOLANA_RE.match(address))


def is_evm_address(address: str) -> bool:
    return bool(EVM_RE.match(address))


def classify(address: str) -> AddressClassification:
    """
    Determine which chain(s) an address format could belong to.

    Rules run in priority order and the first match wins, so a string that
    satisfies several patterns (e.g. a ``bc1`` string that is also valid
    base58) resolves to the earlier rule.

    Parameters
    ----------
    address : str
        Free-text address, surrounding whitespace is ignored

    Returns
    -------
    AddressClassification
        Candidate chains, ambiguity flag and format label

    Examples
    --------
    >>> classify("bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq").candidates
    ['bitcoin']

    """
    if not address or not address.strip():
        return AddressClassification(candidates=[], ambiguous=False, format_label="invalid")

    trimmed = address.strip()

    if is_bitcoin_address(trimmed):
        return AddressClassification(candidates=["bitcoin"], ambiguous=False, format_label="Bitcoin")

    if is_ripple_address(trimmed):
        return AddressClassification(candidates=["ripple"], ambiguous=False, format_label="Ripple")

    if is_cardano_address(trimmed):
        return AddressClassification(candidates=["cardano"], ambiguous=False, format_label="Cardano")

    if is_solana_address(trimmed):
        return AddressClassification(candidates=["solana"], ambiguous=False, format_label="Solana")

    if is_evm_address(trimmed):
        # The format alone cannot tell EVM networks apart
        return AddressClassification(candidates=get_evm_chains(), ambiguous=True, format_label=EVM_FORMAT_LABEL)

    return AddressClassification(candidates=[], ambiguous=False, format_label="unknown")


def validate_address_for_chain(address: str, chain: str) -> bool:
    """Check whether ``chain`` is among the detected candidates for ``address``."""
    return chain.lower() in classify(address).candidates


def address_format_message(address: str) -> str:
    """User-facing description of the detected address format."""
    result = classify(address)

    if not result.candidates:
        return "Unknown address format"

    if result.ambiguous:
        return f"Detected: {result.format_label} - Please select the specific network"

    return f"Detected: {result.format_label}"


def chain_selection_warning(address: str, chain: str) -> str | None:
    """
    Advisory warning for a chain choice inconsistent with the address format.

    The warning never blocks saving; the user may know better than the
    format heuristic.

    Returns
    -------
    str | None
        Warning text, or None when the selection is consistent or the format
        is unknown

    """
    result = classify(address)
    if not result.candidates or chain.lower() in result.candidates:
        return None
    expected = ", ".join(result.candidates)
    return f"Address looks like {result.format_label} ({expected}) but '{chain}' was selected"
