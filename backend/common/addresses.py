"""Account address helpers backed by EVM checksum rules."""

import logging

from web3 import Web3


logger = logging.getLogger(__name__)


def is_valid_account(account: str) -> bool:
    """Return whether *account* is a well-formed EVM address."""
    try:
        return bool(Web3.is_address((account or "").strip()))
    except (TypeError, ValueError):
        return False


def normalize_account(account: str) -> str:
    """Return the checksummed form of *account*.

    Raises:
        ValueError: If the value is not a valid EVM address.
    """
    candidate = (account or "").strip()
    if not is_valid_account(candidate):
        logger.debug("Rejected malformed account=%s", account)
        raise ValueError("Invalid account address: {0}".format(account))
    return Web3.to_checksum_address(candidate)
