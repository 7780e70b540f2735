"""
Response decoding shared by the portfolio API clients.
"""

from typing import Any

import httpx

from shared.errors import BadResponseFormat, HttpError

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Cache-Control": "no-cache",
}


def decode_json_response(response: httpx.Response) -> Any:
    """Return the JSON body of a successful response.

    Raises ``BadResponseFormat`` when the body is not JSON-typed or not
    decodable, and ``HttpError`` (carrying the server ``message`` when there
    is one) when the status is not 2xx.
    """
    content_type = response.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        raise BadResponseFormat(
            details={
                "status_code": response.status_code,
                "content_type": content_type,
                "body": response.text[:200],
            }
        )

    try:
        body = response.json()
    except ValueError as e:
        raise BadResponseFormat(
            "Server returned malformed JSON",
            details={"status_code": response.status_code, "error": str(e)}
        )

    if not response.is_success:
        message = body.get("message") if isinstance(body, dict) else None
        raise HttpError(response.status_code, message or None)

    return body
