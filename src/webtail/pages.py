"""HTML pages for browsing the root and watching a file."""

from html import escape
from urllib.parse import quote, quote_plus

from .sandbox import Entry

HTMX = (
    '<script src="https://unpkg.com/htmx.org@2.0.1" '
    'integrity="sha384-QWGpdj554B4ETpJJC9z+ZHJcA/i59TyjxEPXiiUgN2WmTyV5OEZWCD6gQhgkdpB/" '
    'crossorigin="anonymous"></script>\n'
    '        <script src="https://unpkg.com/htmx-ext-sse@2.2.1/sse.js"></script>'
)

# Wrappers the watch page asks /tail for: one line per row of the <pre>.
LINE_LEFT = ""
LINE_RIGHT = "<br>"


def listing_page(entries: list[Entry]) -> str:
    items = []
    for entry in entries:
        prefix = "dir" if entry.is_dir else "file"
        items.append(
            f'<li><a href="./{prefix}?path={quote(entry.path, safe="")}">'
            f"{escape(entry.name)}</a></li>\n"
        )
    return f"""<!DOCTYPE html>
<html>
    <head>
        <title>WebTail</title>
    </head>
<body>
<p>
<ul>
{"".join(items)}
    </ul></p>
</body>
</html>"""


def watch_page(path: str) -> str:
    """Page whose <pre> grows with every frame streamed from /tail."""
    source = (
        f"/tail?left={quote_plus(LINE_LEFT)}&right={quote_plus(LINE_RIGHT)}"
        f"&file={quote_plus(path)}"
    )
    return f"""<!DOCTYPE html>
<html>
    <head>
        <title>WebTail</title>

        {HTMX}
    </head>
    <body>
        <h1>{escape(path)}</h1>
        <pre hx-ext="sse" sse-connect="{escape(source)}" sse-swap="message" hx-swap="beforebegin swap:1s">
        </pre>
    </body>
</html>"""
