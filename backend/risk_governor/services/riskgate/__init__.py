"""Pure pre-trade risk evaluation: context builder, rule catalog, scorer, assembler."""

from .context import EvaluationContext, build_context
from .engine import decide, evaluate_context, prepare_context
from .rules import RULE_CATALOG, RuleOutcome, run_rules
from .scorer import RiskScore, score_risk

__all__ = [
    "EvaluationContext",
    "build_context",
    "decide",
    "evaluate_context",
    "prepare_context",
    "RULE_CATALOG",
    "RuleOutcome",
    "run_rules",
    "RiskScore",
    "score_risk",
]
