"""
TruthLens - AI inference orchestration for the TruthLens product scanner.

This package resolves chat turns and product-analysis tasks against several
third-party inference providers, under subscription-tier credential rules,
using either a race across providers or an ordered fallback chain.
"""

__version__ = "0.1.0"
