from flask import request
from services.exceptions import InvalidRequestError


def json_payload():
    """Return the JSON body as a dict or reject the request"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequestError("Payload JSON attendu")
    return data


def bool_from_payload(data, key, default=False):
    """Convertit en bool et gère les valeurs manquantes"""
    val = data.get(key)
    return bool(val) if val is not None else default


def required_text(data, key, label=None):
    """Return the stripped string value of ``key``, rejecting blanks"""
    val = data.get(key)
    if isinstance(val, str) and val.strip():
        return val.strip()
    raise InvalidRequestError(f"{label or key} is required")


def optional_text(data, key):
    val = data.get(key)
    if val is None:
        return None
    if not isinstance(val, str):
        raise InvalidRequestError(f"{key} must be a string")
    return val.strip() or None
