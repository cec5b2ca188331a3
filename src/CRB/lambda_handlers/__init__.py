"""Lambda handlers for the claim validation service."""
from .claims_lambda import lambda_handler, ClaimsLambdaRouter

__all__ = ['lambda_handler', 'ClaimsLambdaRouter']
