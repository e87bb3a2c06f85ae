"""
Shared helpers for the Daraja command builders
"""

from typing import Any, Dict, Mapping, Type

from marshmallow import Schema
from marshmallow import ValidationError as SchemaValidationError

from daraja_gateway.errors import InvalidResponse, ValidationError
from daraja_gateway.utils.http import HttpClient


def _flatten_messages(messages, prefix: str = '') -> list:
    if isinstance(messages, dict):
        flat = []
        for key, value in messages.items():
            name = f'{prefix}.{key}' if prefix else str(key)
            flat.extend(_flatten_messages(value, name))
        return flat
    if isinstance(messages, list):
        text = ' '.join(str(m) for m in messages)
        return [f'{prefix}: {text}' if prefix else text]
    return [f'{prefix}: {messages}' if prefix else str(messages)]


def load_request(schema_cls: Type[Schema], request: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate caller input against a command schema

    Raises:
        ValidationError: Listing every field problem
        InvalidPhone: When a phone number cannot be normalised
    """
    if not isinstance(request, Mapping):
        raise ValidationError(f'Request must be an object, got {type(request).__name__}')

    try:
        return schema_cls().load(dict(request))
    except SchemaValidationError as exc:
        raise ValidationError(
            'Invalid request: ' + '; '.join(_flatten_messages(exc.messages)),
            response=exc.messages,
        )


def post_command(
    http: HttpClient,
    url: str,
    access_token: str,
    payload: Dict[str, Any],
    **transport_opts,
) -> Dict[str, Any]:
    """POST a command body and return Daraja's acknowledgement."""
    data = http.post_json(url, access_token, payload, **transport_opts)
    if not isinstance(data, dict):
        raise InvalidResponse(
            f'Expected a JSON object from {url}, got {type(data).__name__}',
            response=data,
        )
    return data
