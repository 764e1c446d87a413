"""Checkout validation rules.

Pure functions; each raises InvalidInput with a message meant for the buyer.
Usernames are checked twice: loosely when typed in (spaces allowed, they become
underscores for Bedrock) and strictly once formatted for submission.
"""

import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from errors import InvalidInput
from schemas import CheckoutRequest, Edition

USERNAME_MIN = 3
USERNAME_MAX = 16
UTR_LENGTH = 12

_RAW_USERNAME = re.compile(r"^[A-Za-z0-9_ ]+$")
_SUBMITTED_USERNAME = re.compile(r"^\.?[A-Za-z0-9_]{3,16}$")
_UTR = re.compile(r"^[0-9]{12}$")
_WHITESPACE = re.compile(r"\s+")
_NON_DIGIT = re.compile(r"[^0-9]")


def require_username(value: Optional[str]) -> str:
    username = (value or "").strip()
    if not username:
        raise InvalidInput("Minecraft username is required.")
    return username


def validate_raw_username(value: Optional[str]) -> str:
    """Validate a username as typed by the buyer. Returns it trimmed."""
    username = require_username(value)
    if len(username) < USERNAME_MIN:
        raise InvalidInput(f"Username must be at least {USERNAME_MIN} characters.")
    if len(username) > USERNAME_MAX:
        raise InvalidInput(f"Username must be at most {USERNAME_MAX} characters.")
    if not _RAW_USERNAME.match(username):
        raise InvalidInput("Username can only contain letters, numbers, underscores and spaces.")
    return username


def validate_edition(value: Any) -> str:
    if value not in (Edition.JAVA.value, Edition.BEDROCK.value):
        raise InvalidInput("Invalid edition. Must be 'java' or 'bedrock'.")
    return value


def format_username(username: str, edition: str) -> str:
    """Bedrock names get a leading dot and underscores for whitespace; Java names pass through."""
    username = username.strip()
    if edition == Edition.BEDROCK.value:
        username = _WHITESPACE.sub("_", username)
        if not username.startswith("."):
            username = "." + username
    return username


def validate_submitted_username(username: str) -> str:
    if not _SUBMITTED_USERNAME.match(username):
        raise InvalidInput("Invalid username format.")
    return username


def normalize_transaction_reference(value: Optional[str]) -> str:
    """What the input box shows: digits only, at most 12 of them."""
    return _NON_DIGIT.sub("", value or "")[:UTR_LENGTH]


def validate_transaction_reference(value: Optional[str]) -> str:
    reference = (value or "").strip()
    if not reference:
        raise InvalidInput("UTR / Transaction ID is required.")
    if not _UTR.match(reference):
        raise InvalidInput(f"UTR must be exactly {UTR_LENGTH} digits.")
    return reference


def _is_valid_quantity(quantity: Any) -> bool:
    return isinstance(quantity, int) and not isinstance(quantity, bool) and quantity >= 1


def validate_items(items: Optional[Sequence[Any]]) -> List[Tuple[str, int]]:
    """Check the cart is non-empty and well formed. Returns (product_id, quantity) pairs."""
    if not items:
        raise InvalidInput("Cart is empty.")
    lines = []
    for item in items:
        product_id = getattr(item, "id", None)
        if not isinstance(product_id, str) or not product_id.strip():
            raise InvalidInput("Invalid item in cart.")
        if not _is_valid_quantity(item.quantity):
            raise InvalidInput(f"Invalid quantity for item: {product_id}")
        lines.append((product_id.strip(), item.quantity))
    return lines


@dataclass
class ValidatedCheckout:
    minecraft_username: str
    edition: str
    transaction_reference: str
    lines: List[Tuple[str, int]]


def validate_checkout(request: CheckoutRequest) -> ValidatedCheckout:
    """Run every checkout rule, in order, against a submitted checkout.

    The username is formatted here from the edition, so whatever formatting
    the client did (or did not do) is redone on the server.
    """
    username = require_username(request.minecraft_username)
    edition = validate_edition(request.edition)
    # Only the strict check runs here, so a short name gets "Invalid username format."
    username = validate_submitted_username(format_username(username, edition))
    reference = validate_transaction_reference(request.transaction_reference)
    lines = validate_items(request.items)
    return ValidatedCheckout(
        minecraft_username=username,
        edition=edition,
        transaction_reference=reference,
        lines=lines,
    )
