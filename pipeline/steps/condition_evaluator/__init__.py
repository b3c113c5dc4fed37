"""
Condition Evaluator Step

Implicit-AND evaluation of rule conditions against the enriched context.
"""

from .main import ConditionEvaluatorStep
from .utils import evaluate

__all__ = ["ConditionEvaluatorStep", "evaluate"]
