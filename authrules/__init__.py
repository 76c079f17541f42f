"""Composable authorization rules, rule sets, payload validation and rule set storage layout."""

__version__ = "0.1.0"
__all__ = ["__version__"]