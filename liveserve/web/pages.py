"""HTML bodies for status and error responses."""

import html
from http import HTTPStatus

_STATUS_PAGE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{code} {reason}</title>
    <style>
      body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
              min-height: 100vh; margin: 0; display: flex; align-items: center;
              justify-content: center; background: #f8f9fa; color: #333; }}
      .container {{ background: white; padding: 3rem; border-radius: 20px; text-align: center;
                    box-shadow: 0 20px 40px rgba(0,0,0,0.1); max-width: 500px; width: 90%; }}
      .status-code {{ font-size: 4rem; font-weight: 700; color: {color}; }}
      .status-text {{ font-size: 1.5rem; color: #666; margin-bottom: 2rem; }}
      .back-link {{ color: #667eea; text-decoration: none; font-weight: 500; }}
    </style>
  </head>
  <body>
    <div class="container">
      <div class="status-code">{code}</div>
      <div class="status-text">{reason}</div>
      {link}
    </div>
  </body>
</html>"""


def status_text(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unknown Status"


def render_status_page(code: int) -> str:
    is_error = code >= 400
    return _STATUS_PAGE.format(
        code=code,
        reason=html.escape(status_text(code)),
        color="#e74c3c" if is_error else "#27ae60",
        link='<a href="/" class="back-link">&larr; Go back home</a>' if is_error else "",
    )
