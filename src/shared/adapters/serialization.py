"""JSON wire format for domain events."""

import json
import logging
from dataclasses import fields
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Union

from shared.domain.commands import Event
from shared.domain.events import EVENT_TYPES
from shared.domain.exceptions import DeserializationError

logger = logging.getLogger(__name__)

# Fields whose wire representation is a string that needs converting back.
_DECODERS = {
    "timestamp": datetime.fromisoformat,
    "published_date": date.fromisoformat,
    "price": Decimal,
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _encode(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return value


def _decode(name: str, value: Any, key: str) -> Any:
    decoder = _DECODERS.get(name)
    if decoder is None or value is None:
        return value
    try:
        return decoder(value)
    except (TypeError, ValueError, InvalidOperation) as e:
        raise DeserializationError(f"Invalid value for {key}: {value!r}") from e


def event_to_dict(event: Event) -> Dict[str, Any]:
    """Convert an event to its canonical camelCase dictionary."""
    payload = {
        "eventType": event.event_type,
        "aggregateType": event.aggregate_type,
        "sourceService": event.source_service,
    }
    for f in fields(event):
        payload[_camel(f.name)] = _encode(getattr(event, f.name))
    return payload


def serialize_event(event: Event) -> str:
    """Serialize event to JSON, handling dates, datetimes and decimals."""
    return json.dumps(event_to_dict(event), sort_keys=True)


def deserialize_event(raw: Union[str, bytes]) -> Event:
    """
    Rebuild a typed event from its JSON payload.

    Raises:
        DeserializationError: the payload is not JSON, names an unknown event
            type, misses required fields or carries malformed values.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise DeserializationError(f"Event payload is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DeserializationError("Event payload must be a JSON object")

    event_type = data.get("eventType")
    if not isinstance(event_type, str):
        raise DeserializationError(f"eventType must be a string, got {event_type!r}")
    event_cls = EVENT_TYPES.get(event_type)
    if event_cls is None:
        raise DeserializationError(f"Unknown event type: {event_type!r}")
    if not data.get("eventId"):
        raise DeserializationError(f"{event_type} payload has no eventId")

    kwargs = {}
    for f in fields(event_cls):
        key = _camel(f.name)
        if key not in data:
            continue
        value = data[key]
        if f.name == "previous_values" and isinstance(value, dict):
            value = {name: _decode(name, item, f"{key}.{name}") for name, item in value.items()}
        else:
            value = _decode(f.name, value, key)
        kwargs[f.name] = value

    try:
        return event_cls(**kwargs)
    except TypeError as e:
        raise DeserializationError(f"Incomplete {event_type} payload: {e}") from e
