"""LegalPro case workflow core."""
