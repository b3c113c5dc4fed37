"""
Data Enricher Step

Merges the caller payload, stored submission, field aliases and lead data.
"""

from .main import DataEnricherStep

__all__ = ["DataEnricherStep"]
