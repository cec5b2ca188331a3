"""Input screening and log masking."""
from .prompt_guard import scan_input, screen_claim_description
from .pii import mask_policy_number, redact_pii

__all__ = ['scan_input', 'screen_claim_description', 'mask_policy_number', 'redact_pii']
