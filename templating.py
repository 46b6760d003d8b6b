import re
from typing import Dict, Iterable

SITE_NAME_PLACEHOLDER = "%SITE_NAME%"
MESSAGE_PLACEHOLDER = "%MESSAGE_SECTION%"
_BODY_CLOSE = re.compile(r"</body>", re.IGNORECASE)

_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
}

DEFAULT_LANDING = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>%SITE_NAME%</title>
  <style>
    body { font-family: system-ui, sans-serif; max-width: 640px; margin: 30px auto; padding: 0 14px; color: #222; }
    h1 { margin-bottom: 4px; }
    .hint { color: #666; margin-top: 0; }
    .msg-section { margin-top: 26px; }
    .msg-section input[type=text] { width: 100%; max-width: 460px; padding: 8px; box-sizing: border-box; }
    .msg-section button { margin-top: 8px; padding: 8px 18px; }
    .wall { margin-top: 18px; max-height: 320px; overflow-y: auto; border: 1px solid #ccc; border-radius: 6px; padding: 8px; }
    .wall-entry { padding: 4px 0; border-bottom: 1px solid #eee; word-break: break-word; }
    .wall-entry .ts { color: #888; font-family: ui-monospace, monospace; margin-right: 8px; }
  </style>
</head>
<body>
  <h1>%SITE_NAME%</h1>
  <p class="hint">Welcome! You are connected to the local portal.</p>
  %MESSAGE_SECTION%
</body>
</html>
"""


def escape(s: str) -> str:
    """Entity-escape & < > " in a single pass (no re-escaping of the output)."""
    return "".join(_ENTITIES.get(ch, ch) for ch in s)

def render(template: str, bindings: Dict[str, str]) -> str:
    """Literal find/replace of every binding key, in insertion order."""
    out = template
    for key, value in bindings.items():
        out = out.replace(key, value)
    return out

def split_wall_record(record: str):
    ts, sep, msg = record.partition("|")
    if not sep:
        return "", record
    return ts, msg

def build_message_section(public_wall: bool, wall_records: Iterable[str], max_chars: int = 200) -> str:
    """
    Submission form, followed by the wall in stored (newest first) order when
    the wall is public and has entries.
    """
    parts = [
        '<div class="msg-section">',
        "<h3>Leave a message</h3>",
        '<form method="POST" action="/submit-message">',
        f'<input type="text" name="msg" maxlength="{max_chars}" placeholder="Your message..." required>',
        '<br><button type="submit">Send</button>',
        "</form>",
    ]

    records = list(wall_records) if public_wall else []
    if records:
        parts.append('<div class="wall">')
        for record in records:
            ts, msg = split_wall_record(record)
            parts.append(
                f'<div class="wall-entry"><span class="ts">{escape(ts)}</span>{escape(msg)}</div>'
            )
        parts.append("</div>")

    parts.append("</div>")
    return "\n".join(parts)

def render_landing(template: str, site_name: str, fragment: str) -> str:
    html = render(template, {SITE_NAME_PLACEHOLDER: escape(site_name)})
    if MESSAGE_PLACEHOLDER in html:
        # fragment is already escaped where it needs to be
        return render(html, {MESSAGE_PLACEHOLDER: fragment})
    if fragment in html:
        return html

    # last match, found on the original string so offsets stay valid
    matches = list(_BODY_CLOSE.finditer(html))
    if not matches:
        return html + fragment
    idx = matches[-1].start()
    return html[:idx] + fragment + html[idx:]
