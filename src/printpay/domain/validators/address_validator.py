"""Business rules for shipping addresses that go beyond schema validation"""

import re
from typing import Dict

from printpay.domain.errors import BusinessRuleError

# country code -> postal code pattern
POSTAL_CODE_PATTERNS: Dict[str, "re.Pattern[str]"] = {
    "US": re.compile(r"^\d{5}(-\d{4})?$"),
}


def validate_postal_code(country: str, postal_code: str) -> None:
    """Check the postal code format for countries with a known rule.

    Raises:
        BusinessRuleError: If the code does not match the country's format
    """
    pattern = POSTAL_CODE_PATTERNS.get(country.upper())
    if pattern is not None and not pattern.match(postal_code):
        raise BusinessRuleError("INVALID_ADDRESS", f"Invalid {country.upper()} ZIP format")


ADDRESS_RULES = (validate_postal_code,)


def validate_address(country: str, postal_code: str) -> None:
    for rule in ADDRESS_RULES:
        rule(country, postal_code)
