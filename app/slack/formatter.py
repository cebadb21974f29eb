"""
Rendering of change events as Slack mrkdwn text.

https://api.slack.com/reference/surfaces/formatting
"""

import json
import re
from typing import Any, Dict

from app.relay.errors import RenderFailure
from app.relay.models import ChangeEvent, OutboundMessage


def escape_slack_text(text: str) -> str:
    """Escape the three control characters of Slack mrkdwn."""
    # "&" first, so the entities produced below stay intact
    text = text.replace("&", "&amp;")
    text = text.replace("<", "&lt;")
    return text.replace(">", "&gt;")


def display_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None or isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# Letters, digits and underscores, joined by apostrophes or dots, form a word;
# spaces, hyphens and other punctuation separate words
_WORD = re.compile(r"\w+(?:['\u2019.]\w+)*")


def title_case(name: str) -> str:
    return _WORD.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), name)


def user_link(base_url: str, user_id: int) -> str:
    return f"{base_url}/admin/#/_/users/{user_id}"


def object_link(base_url: str, object_type_name: str, record_id: Any) -> str:
    return f"{base_url}/admin/#/_/collections/{object_type_name}/{display_value(record_id)}"


def render_message(event: ChangeEvent, base_url: str) -> OutboundMessage:
    """Build the Slack message announcing a created, updated or deleted record."""
    modified_by = user_link(base_url, event.modified_by_user_id)
    modified_obj = escape_slack_text(
        object_link(base_url, event.object_type_name, event.record_id)
    )

    text = "<{}|User with ID {}> created/updated/deleted <{}|{} with ID {}>.".format(
        modified_by,
        event.modified_by_user_id,
        modified_obj,
        escape_slack_text(title_case(event.object_type_name)),
        escape_slack_text(display_value(event.record_id)),
    )

    text += f"\n\nLinks for copy-pasting:\n`{modified_by}`\n`{modified_obj}`\n"

    text += "\n\n*Changes*:\n"
    for key, value in event.changed_fields.items():
        text += f"- _{escape_slack_text(key)}_: {escape_slack_text(display_value(value))}\n"

    return OutboundMessage(text=text)


def build_outgoing(event: ChangeEvent, base_url: str) -> Dict[str, str]:
    """Render the event into the JSON body Slack expects."""
    try:
        body = render_message(event, base_url).to_wire()
        json.dumps(body)
    except (TypeError, ValueError) as e:
        raise RenderFailure(f"Could not render message: {e}") from e
    return body
