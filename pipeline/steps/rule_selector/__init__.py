"""
Rule Selector Step

Loads active rules and parses their stored conditions once.
"""

from .main import RuleSelectorStep

__all__ = ["RuleSelectorStep"]
