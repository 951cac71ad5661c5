from html import escape

from fastapi.responses import HTMLResponse

from app.models import Url

PREVIEW_HTML = """<!DOCTYPE html>
<html lang="zh-CN">
<head>
    <meta charset="UTF-8">
    <meta http-equiv="X-UA-Compatible" content="IE=edge">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <link rel="shortcut icon" href="{icon}" type="image/x-icon">
    <title>{title}</title>
</head>

<body>
<div>{body}</div>
</body>
</html>"""

def preview_html(url: Url) -> str:
    return PREVIEW_HTML.format(
        icon=escape(url.icon, quote=True),
        title=escape(url.title),
        body=escape(url.body),
    )

def preview_page(url: Url) -> HTMLResponse:
    return HTMLResponse(preview_html(url))
