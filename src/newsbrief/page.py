"""HTML page assembly."""

from __future__ import annotations

from datetime import datetime
from email.utils import format_datetime
from typing import TYPE_CHECKING

from jinja2 import BaseLoader, Environment

if TYPE_CHECKING:
    from newsbrief.config import PageSettings

UNAVAILABLE_NOTICE = "News summary is currently unavailable."
PENDING_NOTICE = "No summary available yet."

_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{{ page.title }}</title>
    {% if page.auto_refresh_seconds %}<meta http-equiv="refresh" content="{{ page.auto_refresh_seconds }}">{% endif %}
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif;
            line-height: 1.6;
            margin: 0;
            padding: 20px;
            background-color: #f4f7f6;
            color: #333;
        }
        .container {
            max-width: 800px;
            margin: 20px auto;
            padding: 30px;
            background-color: #ffffff;
            border-radius: 8px;
            box-shadow: 0 2px 10px rgba(0, 0, 0, 0.1);
        }
        h1 { color: #2c3e50; font-size: 1.8em; margin-bottom: 0.5em; }
        h2 {
            color: #34495e;
            font-size: 1.4em;
            margin-top: 1.5em;
            margin-bottom: 0.7em;
            border-bottom: 1px solid #ecf0f1;
            padding-bottom: 0.3em;
        }
        hr { border: 0; height: 1px; background-color: #bdc3c7; margin: 2em 0; }
        pre {
            white-space: pre-wrap;
            overflow-wrap: break-word;
            background-color: #ecf0f1;
            padding: 15px;
            border-radius: 4px;
            font-family: "Courier New", Courier, monospace;
            font-size: 0.95em;
            color: #2c3e50;
        }
        blockquote { margin: 1em 0; padding-left: 1em; border-left: 3px solid #e67e22; color: #7f8c8d; }
        .notice { color: #7f8c8d; font-style: italic; }
        footer { margin-top: 2em; font-size: 0.85em; color: #95a5a6; }
    </style>
</head>
<body>
    <div class="container">
        <h1>The current time is: {{ now }}</h1>
        <hr>
        <h2>{{ page.heading }}:</h2>
        <section class="summary">
        {% if notice %}<p class="notice">{{ notice }}</p>{% else %}{{ content | safe }}{% endif %}
        </section>
        {% if updated_at %}<footer>Summary updated {{ updated_at }}</footer>{% endif %}
    </div>
</body>
</html>
"""

_env = Environment(loader=BaseLoader(), autoescape=True)
_template = _env.from_string(_TEMPLATE)


def http_date(moment: datetime) -> str:
    """RFC 1123 date, e.g. ``Sun, 18 Oct 2026 09:30:00 GMT``."""
    return format_datetime(moment, usegmt=True)


def render_page(
    page: PageSettings,
    *,
    content: str,
    now: datetime,
    notice: str | None = None,
    updated_at: datetime | None = None,
) -> str:
    """Fill the page template.

    ``content`` is trusted markup from the renderer and is inserted as is;
    every other value is escaped.
    """
    return _template.render(
        page=page,
        content=content,
        now=http_date(now),
        notice=notice,
        updated_at=http_date(updated_at) if updated_at else None,
    )
