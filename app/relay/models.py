"""
Data carried through one relay request: the parsed change event, the Slack
destination and the outgoing message.
"""

import json
import math
from typing import Any, Dict, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, ValidationError, conint

from app.relay.errors import ValidationFailure

# Audit fields Directus adds to every webhook body
AUDIT_FIELDS = ("id", "modified_by", "modified_on")

# Directus user ids are 64-bit integers
UserID = conint(strict=True, ge=-(2 ** 63), le=2 ** 63 - 1)


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"Number out of range: {text}")
    return value


def _reject_constant(name: str) -> float:
    raise ValueError(f"Invalid JSON literal: {name}")


class ChangeEvent(BaseModel):
    record_id: Union[StrictStr, StrictInt, StrictFloat]
    modified_by_user_id: UserID
    modified_on: StrictStr
    changed_fields: Dict[str, Any]
    object_type_name: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_body(cls, body: bytes, object_type_name: str) -> "ChangeEvent":
        """Decode a webhook body and split the audit fields from the changes."""
        try:
            payload = json.loads(body, parse_float=_finite_float, parse_constant=_reject_constant)
        except (UnicodeDecodeError, ValueError, RecursionError) as e:
            raise ValidationFailure(f"Body is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ValidationFailure("Body must be a JSON object")

        missing = [field for field in AUDIT_FIELDS if field not in payload]
        if missing:
            raise ValidationFailure(f"Body is missing fields: {', '.join(missing)}")

        record_id = payload.pop("id")
        modified_by = payload.pop("modified_by")
        modified_on = payload.pop("modified_on")

        name = object_type_name.strip()
        if not name:
            raise ValidationFailure("Empty object type name")

        try:
            return cls(
                record_id=record_id,
                modified_by_user_id=modified_by,
                modified_on=modified_on,
                changed_fields=payload,
                object_type_name=name,
            )
        except ValidationError as e:
            raise ValidationFailure(f"Invalid audit fields: {e}") from e


class RelayTarget(BaseModel):
    """Secret path of a Slack incoming webhook, e.g. ``T000/B000/XXXX``."""

    secret_path: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_path(cls, path: str) -> "RelayTarget":
        secret_path = path.strip()
        if not secret_path or secret_path.count("/") != 2:
            raise ValidationFailure("Empty or invalid Slack URL path")
        if not all(secret_path.split("/")):
            raise ValidationFailure("Slack URL path has an empty segment")
        return cls(secret_path=secret_path)

    def url(self, base_url: str) -> str:
        return f"{base_url}/{self.secret_path}"


class OutboundMessage(BaseModel):
    text: str

    def to_wire(self) -> Dict[str, str]:
        return {"text": self.text}
