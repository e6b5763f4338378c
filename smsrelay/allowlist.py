import logging
import re
from typing import Optional

log = logging.getLogger(__name__)

# Formatting characters ignored when comparing numbers
FORMATTING_CHARS = re.compile(r'[\s\-().]')
VALID_NUMBER = re.compile(r'^[+\d\s\-().]+$')


def normalize_number(number: str) -> str:
    """Strip spaces, dashes, parentheses and dots."""
    return FORMATTING_CHARS.sub('', number)


def validate_number(number: str) -> Optional[str]:
    """Return an error message for an unusable allow-list entry, or None."""
    trimmed = number.strip()
    if not trimmed:
        return "Phone number cannot be empty"
    if len(trimmed) < 5:
        return "Phone number too short"
    if len(trimmed) > 20:
        return "Phone number too long"
    if not VALID_NUMBER.match(trimmed):
        return "Invalid phone number format"
    return None


class AllowList:
    """Gate deciding which senders get relayed."""

    def __init__(self, numbers: list[str] = None):
        self.numbers: list[str] = []
        self.warnings: list[str] = []
        for number in numbers or []:
            number = str(number).strip()
            error = validate_number(number)
            if error:
                self.warnings.append(f"{number!r}: {error}")
                log.warning(f"[allowlist] Ignoring entry {number!r}: {error}")
                continue
            self.numbers.append(number)

    @classmethod
    def from_config(cls, config: dict) -> "AllowList":
        allow_conf = config.get("allowlist", {}) or {}
        return cls(allow_conf.get("numbers", []))

    def is_allowed(self, sender: str) -> bool:
        """Check if sender matches an allowed number.

        Carriers format numbers inconsistently, so a match is equality or one
        normalized number containing the other.
        """
        if not self.numbers:
            log.warning("[allowlist] No numbers configured, rejecting everyone")
            return False

        incoming = normalize_number(sender)
        if not incoming:
            return False

        for allowed in self.numbers:
            normalized = normalize_number(allowed)
            if incoming == normalized or normalized in incoming or incoming in normalized:
                return True
        return False

    def summary(self) -> str:
        if not self.numbers:
            return "No numbers configured"
        if len(self.numbers) == 1:
            return f"1 number: {self.numbers[0]}"
        more = "..." if len(self.numbers) > 2 else ""
        return f"{len(self.numbers)} numbers: {', '.join(self.numbers[:2])}{more}"
