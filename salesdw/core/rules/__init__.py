"""
Conformance rule tables and their YAML configuration loader.
"""

from .rule_config import ConformanceRules, RuleConfigLoader, load_rules

__all__ = [
    "ConformanceRules",
    "RuleConfigLoader",
    "load_rules",
]
