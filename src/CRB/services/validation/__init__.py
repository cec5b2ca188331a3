"""Claim validation service."""
from .claim_validation import ClaimValidationService

__all__ = ['ClaimValidationService']
