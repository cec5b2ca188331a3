"""
Lambda handler for claim validation behind API Gateway (proxy integration).

Routes:
    POST  (any path)       → validate the claim in the JSON body
    GET   /health          → corpus size and audit counters

Environment Variables:
    AWS_DEFAULT_REGION, QDRANT_URL, QDRANT_API_KEY, QDRANT_COLLECTION,
    DYNAMODB_AUDIT_TABLE, BEDROCK_EMBEDDING_MODEL_ID, BEDROCK_LLM_MODEL_ID
"""

import base64
import binascii
import json
from typing import Any, Dict, Optional

from pydantic import ValidationError

from CRB.core.exceptions import InputError
from CRB.core.logging_config import get_logger, setup_root_logger
from CRB.core.models import ClaimRequest
from CRB.services.factory import ServiceContainer, build_services

# Setup logging
setup_root_logger()
logger = get_logger(__name__)

# Pending audit records are flushed before returning; the execution
# environment is frozen between invocations.
AUDIT_FLUSH_TIMEOUT_SEC = 2.0


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str)
    }


class ClaimsLambdaRouter:
    """
    Routes API Gateway proxy events to the claim validation service.

    Services are built lazily on the first request and reused across warm
    invocations.
    """

    def __init__(self, container: Optional[ServiceContainer] = None):
        self._services = container

    @property
    def services(self) -> ServiceContainer:
        """Lazy initialization of the service container."""
        if self._services is None:
            self._services = build_services()
            logger.info("Claim validation services initialized")
        return self._services

    @staticmethod
    def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Decode the JSON body of a proxy event.

        Raises:
            InputError: If the body is missing, badly encoded or not a JSON object
        """
        body = event.get("body")
        if not body:
            raise InputError("Request body is required")
        if event.get("isBase64Encoded"):
            try:
                body = base64.b64decode(body, validate=True).decode("utf-8")
            except (binascii.Error, ValueError) as e:
                raise InputError(f"Request body is not valid base64-encoded UTF-8: {e}")
        try:
            payload = json.loads(body) if isinstance(body, str) else body
        except json.JSONDecodeError as e:
            raise InputError(f"Request body is not valid JSON: {e}")
        if not isinstance(payload, dict):
            raise InputError("Request body must be a JSON object")
        return payload

    def validate_claim(self, event: Dict[str, Any]) -> Dict[str, Any]:
        try:
            payload = self.parse_body(event)
            request = ClaimRequest.model_validate(payload)
            result = self.services.validation_service.validate(request)
        except ValidationError as e:
            return _response(400, {"error": "Invalid claim request", "details": e.errors(include_url=False)})
        except InputError as e:
            return _response(400, {"error": e.message, "details": e.details})
        finally:
            if self._services is not None:
                self._services.audit_dispatcher.flush(AUDIT_FLUSH_TIMEOUT_SEC)

        return _response(200, result.model_dump(mode="json"))

    def health(self) -> Dict[str, Any]:
        return _response(200, {
            "status": "healthy",
            "corpus_clauses": len(self.services.corpus),
            "audit": self.services.audit_dispatcher.stats()
        })

    def route(self, event: Dict[str, Any]) -> Dict[str, Any]:
        method = (event.get("httpMethod") or "POST").upper()
        path = event.get("path") or "/"

        if method == "GET" and path.rstrip("/").endswith("/health"):
            return self.health()
        if method == "POST":
            return self.validate_claim(event)
        return _response(405, {"error": f"Method {method} not allowed"})


# Global router instance (reused across warm invocations)
router = None


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    AWS Lambda handler for API Gateway proxy events.

    Args:
        event: API Gateway proxy event (body = ClaimRequest JSON)
        context: Lambda context object

    Returns:
        API Gateway proxy response
    """
    global router

    if router is None:
        logger.info("Cold start - initializing router")
        router = ClaimsLambdaRouter()

    request_id = getattr(context, "aws_request_id", "local")
    logger.info(f"Lambda invoked: request_id={request_id}, method={event.get('httpMethod')}, path={event.get('path')}")

    try:
        return router.route(event)
    except Exception as e:
        logger.error(f"Lambda execution failed: {str(e)}", exc_info=True)
        return _response(500, {"error": "Internal server error", "error_type": type(e).__name__})
