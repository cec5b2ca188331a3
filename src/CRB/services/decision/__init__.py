"""Claim decision generation, business rules and decision review."""
from .bedrock_llm import BedrockDecisionMaker, parse_decision, build_prompt
from .rules import apply_business_rules, no_clauses_decision
from .citations import citation_warnings
from .contradictions import detect_contradictions, has_critical_contradictions

__all__ = [
    'BedrockDecisionMaker',
    'parse_decision',
    'build_prompt',
    'apply_business_rules',
    'no_clauses_decision',
    'citation_warnings',
    'detect_contradictions',
    'has_critical_contradictions',
]
