"""
Field Resolver Step

Loads the form's fields and assigns stable ids to legacy fields.
"""

from .main import FieldResolverStep

__all__ = ["FieldResolverStep"]
