# domain_agent/responses.py
from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder


def success_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """
    The success envelope shared by every route:

        {"success": true, "data": {...}, "message": "..."}

    Failures are rendered by error_handlers.format_error_response.
    """
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = jsonable_encoder(data, by_alias=True)
    if message:
        body["message"] = message
    return body
