import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from services.wishlist_service import (
    ValidationError,
    WishlistError,
    WishlistService,
    wishlist_service,
)

logger = logging.getLogger()
logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

# CORS headers
HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    operation: Callable[..., Dict[str, Any]]
    summary: str


def response(status_code: int, body: Any = None) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(HEADERS),
        "body": "" if body is None else json.dumps(body),
    }


def error_response(status_code: int, error: str, message: str) -> Dict[str, Any]:
    """Return an ErrorModel response."""
    return response(status_code, {"error": error, "errorMessage": message})


def list_games(service: WishlistService, params: Dict[str, str], body: Any) -> Dict[str, Any]:
    """List all games in the wishlist."""
    items = service.list_items()
    return response(200, [item.to_dict() for item in items])


def add_game(service: WishlistService, params: Dict[str, str], body: Any) -> Dict[str, Any]:
    """Add a game to the wishlist and echo it back."""
    item = service.add_item(body)
    return response(200, item.to_dict())


def delete_game(service: WishlistService, params: Dict[str, str], body: Any) -> Dict[str, Any]:
    """Delete a game from the wishlist by id."""
    service.delete_item(params["id"])
    return response(204)


def index(service: WishlistService, params: Dict[str, str], body: Any) -> Dict[str, Any]:
    return response(
        200,
        {
            "message": "Games wishlist API",
            "endpoints": {f"{r.method} {r.path}": r.summary for r in ROUTES},
        },
    )


ROUTES: Tuple[Route, ...] = (
    Route("GET", "/", index, "Describe the API"),
    Route("GET", "/games", list_games, "Get list of games in wishlist"),
    Route("POST", "/game", add_game, "Add a game to the wishlist"),
    Route("DELETE", "/game/{id}", delete_game, "Delete a game by id from the wishlist"),
)


def match_path(template: str, path: str) -> Optional[Dict[str, str]]:
    """Match ``path`` against a ``/a/{b}`` style template.

    Returns the captured placeholders, or None when the path does not match.
    """
    template_parts = template.strip("/").split("/")
    path_parts = path.strip("/").split("/")
    if len(template_parts) != len(path_parts):
        return None

    params = {}
    for expected, actual in zip(template_parts, path_parts):
        if expected.startswith("{") and expected.endswith("}"):
            if not actual:
                return None
            params[expected[1:-1]] = actual
        elif expected != actual:
            return None
    return params


def parse_body(event: Dict[str, Any]) -> Any:
    body = event.get("body")
    if not body:
        return None
    if event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise ValidationError("Request body is not valid UTF-8 JSON")
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        # Left for the service to reject as an invalid payload.
        return body


def handle_request(event: Dict[str, Any], service: WishlistService) -> Dict[str, Any]:
    http_method = event.get("requestContext", {}).get("http", {}).get("method", "GET")
    path = event.get("requestContext", {}).get("http", {}).get("path") or event.get("rawPath", "/")
    path_parameters = event.get("pathParameters") or {}

    # Handle OPTIONS request for CORS
    if http_method == "OPTIONS":
        return response(200, {"message": "OK"})

    path_matched = False
    for route in ROUTES:
        params = match_path(route.path, path)
        if params is None:
            continue
        path_matched = True
        if route.method != http_method:
            continue

        # Prefer the values API Gateway already decoded.
        params.update({k: v for k, v in path_parameters.items() if k in params})
        try:
            return route.operation(service, params, parse_body(event))
        except WishlistError as e:
            return response(e.status_code, e.to_dict())
        except Exception as e:
            logger.exception("Error processing %s %s", http_method, path)
            return error_response(500, "InternalServerError", f"Internal server error: {str(e)}")

    if path_matched:
        return error_response(405, "MethodNotAllowed", "Method not allowed")
    return error_response(404, "NotFound", "Not Found")


def lambda_handler(event, context):
    """
    AWS Lambda handler function for the wishlist HTTP API.
    """
    request_id = getattr(context, "aws_request_id", "-")
    http = event.get("requestContext", {}).get("http", {})
    logger.info(
        "[%s] Processing %s %s", request_id, http.get("method"), http.get("path") or event.get("rawPath")
    )
    return handle_request(event, wishlist_service)
