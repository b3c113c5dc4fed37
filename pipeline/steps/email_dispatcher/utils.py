"""
Email Dispatcher Utilities
"""

import re
from typing import List, Optional

from pipeline.models.core import RuleRecord

_ADDRESS_SEPARATORS = re.compile(r"[,;]")


def parse_email_list(value: Optional[str]) -> List[str]:
    """
    Split a comma/semicolon separated address list, dropping blanks and duplicates.

    >>> parse_email_list("a@x.com, b@x.com;; a@x.com")
    ['a@x.com', 'b@x.com']
    """
    if not value:
        return []
    addresses: List[str] = []
    for part in _ADDRESS_SEPARATORS.split(value):
        address = part.strip()
        if address and address not in addresses:
            addresses.append(address)
    return addresses


def effective_copies(rule: RuleRecord) -> tuple[List[str], List[str]]:
    """cc and bcc for a rule; the rule's own lists replace the template defaults."""
    template = rule.template
    cc = parse_email_list(rule.cc_emails) or parse_email_list(template.cc_emails if template else None)
    bcc = parse_email_list(rule.bcc_emails) or parse_email_list(template.bcc_emails if template else None)
    return cc, bcc
