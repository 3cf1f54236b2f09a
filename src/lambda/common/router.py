"""
Outermost boundary shared by every function: OPTIONS preflight, request
normalization, error-to-response conversion and CORS on every response.
"""

import logging

from botocore.exceptions import ClientError

from common.errors import ApiError, UpstreamError
from common.request import Request
from common.response import error, for_payload, preflight, with_cors

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def lambda_entry(name: str, settings, route):
    """
    Wrap route(request) -> response | None as a Lambda handler.
    A None result means no route matched.
    """

    def handler(event, context):
        try:
            request = Request.from_event(event)
        except (AttributeError, ValueError, TypeError):
            logger.exception("%s: malformed event", name)
            return with_cors(error("Malformed request", 400), settings.cors)

        logger.info("%s: request received %s %s", name, request.method, request.path)

        if request.method == "OPTIONS":
            return with_cors(preflight(), settings.cors)

        try:
            response = route(request)
            if response is None:
                response = error("Route not found", 404, path=request.path, method=request.method)
        except UpstreamError as exc:
            logger.error("%s: upstream failure: %s", name, exc.detail)
            response = error(exc.message, exc.status)
        except ApiError as exc:
            logger.info("%s: %s %s -> %s %s", name, request.method, request.path, exc.status, exc.message)
            response = error(**_error_kwargs(exc))
        except ClientError:
            logger.exception("%s: DynamoDB call failed", name)
            response = error("Internal server error", 500)
        except Exception:
            logger.exception("%s: unhandled exception", name)
            response = error("Internal server error", 500)
        return with_cors(for_payload(response, request.payload_version), settings.cors)

    return handler


def _error_kwargs(exc: ApiError) -> dict:
    body = exc.to_body()
    message = body.pop("error")
    return {"message": message, "status": exc.status, **body}
