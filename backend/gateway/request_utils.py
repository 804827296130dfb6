"""
Request helpers shared by the service blueprints.
"""

from typing import Any, Dict

from flask import request

from backend.models.errors import ValidationError


def json_body() -> Dict[str, Any]:
    """
    The request's JSON object, or {} when no body was sent.

    Raises:
        ValidationError: The body parsed to something other than an object
            (a list, string or number).
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
