"""
Verdicts for executed snippets.
"""

from .classifier import Verdict, VerdictStatus, classify, indeterminate

__all__ = ["Verdict", "VerdictStatus", "classify", "indeterminate"]
