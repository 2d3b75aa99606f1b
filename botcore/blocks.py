"""
Rendering of replies into Slack Block Kit payloads.
"""

from .models import Control, ControlKind, Reply

# Slack limits
MAX_SECTION_TEXT = 3000
MAX_LABEL = 75
MAX_OPTIONS = 100


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit - 1] + "…"


def _plain_text(text: str, limit: int = MAX_LABEL) -> dict:
    return {"type": "plain_text", "text": _truncate(text, limit), "emoji": True}


def render_control(control: Control) -> dict:
    """Render one button or selection menu element."""
    if control.kind is ControlKind.BUTTON:
        element = {
            "type": "button",
            "action_id": control.component_id,
            "text": _plain_text(control.label),
        }
        if control.style in ("primary", "danger"):
            element["style"] = control.style
        return element

    return {
        "type": "static_select",
        "action_id": control.component_id,
        "placeholder": _plain_text(control.label, 150),
        "options": [
            {"text": _plain_text(label), "value": value}
            for label, value in control.options[:MAX_OPTIONS]
        ],
    }


def render_blocks(reply: Reply) -> list[dict]:
    """Render a reply as a section followed by an actions block."""
    blocks = [
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": _truncate(reply.text, MAX_SECTION_TEXT) or " "
            }
        }
    ]

    if reply.controls:
        blocks.append({
            "type": "actions",
            "elements": [render_control(control) for control in reply.controls]
        })

    return blocks


def render_message(reply: Reply) -> dict:
    """Keyword arguments for respond()."""
    return {
        "text": reply.text,
        "blocks": render_blocks(reply),
        "response_type": "ephemeral" if reply.ephemeral else "in_channel",
    }
