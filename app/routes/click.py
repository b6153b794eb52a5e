"""
click.py
--------
Purpose:
    Referral link entry points.

    1. GET /r/{code} - landing page that reads screen size, timezone and
       language in the browser, then forwards to /api/process-click
    2. GET /api/process-click - records the click fingerprint (iOS only) and
       redirects to the right store
"""

import html
import json
from string import Template
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.features.attribution.services import ClickService, click_service
from app.infrastructure.observability.logging import get_logger

router = APIRouter(tags=["clicks"])
logger = get_logger(__name__)

LANDING_PAGE = Template(
    """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Opening App...</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, sans-serif; display: flex;
           justify-content: center; align-items: center; height: 100vh; margin: 0;
           background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; }
    .container { text-align: center; padding: 20px; }
    .spinner { width: 50px; height: 50px; border: 3px solid rgba(255,255,255,0.3);
               border-top-color: white; border-radius: 50%; margin: 0 auto 20px;
               animation: spin 1s linear infinite; }
    @keyframes spin { to { transform: rotate(360deg); } }
  </style>
</head>
<body>
  <div class="container">
    <div class="spinner"></div>
    <p>Taking you to the app...</p>
  </div>
  <script>
    (function () {
      var code = $code_json;
      try {
        navigator.clipboard.writeText(JSON.stringify({ ref: code, ts: Date.now() })).catch(function () {});
      } catch (e) {}
      var params = new URLSearchParams({
        code: code,
        sw: String(screen.width),
        sh: String(screen.height),
        tz: Intl.DateTimeFormat().resolvedOptions().timeZone || "",
        lang: navigator.language || ""
      });
      window.location.replace("/api/process-click?" + params.toString());
    })();
  </script>
  <noscript>
    <meta http-equiv="refresh" content="0;url=$fallback_url">
  </noscript>
</body>
</html>
"""
)


def get_click_service() -> ClickService:
    return click_service


def render_landing_page(code: str) -> str:
    # "<" is escaped so a code cannot close the script element
    code_json = json.dumps(code).replace("<", "\\u003c")
    fallback_url = html.escape("/api/process-click?" + urlencode({"code": code}), quote=True)
    return LANDING_PAGE.substitute(code_json=code_json, fallback_url=fallback_url)


def _parse_dimension(raw: str | None) -> float | None:
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


@router.get("/r/{code}", response_class=HTMLResponse)
async def landing_page(code: str = Path(..., min_length=1, max_length=64)):
    return HTMLResponse(render_landing_page(code))


@router.get("/api/process-click")
async def process_click(
    request: Request,
    code: str = Query(..., min_length=1, max_length=64),
    sw: str | None = Query(default=None),
    sh: str | None = Query(default=None),
    tz: str | None = Query(default=None),
    lang: str | None = Query(default=None),
    service: ClickService = Depends(get_click_service),
):
    """Record the click and redirect to the platform's store page."""
    outcome = await service.record_click(
        referral_code=code,
        user_agent=request.headers.get("user-agent", ""),
        ip_address=getattr(request.state, "ip_address", None) or "unknown",
        screen_width=_parse_dimension(sw),
        screen_height=_parse_dimension(sh),
        language=lang,
        timezone=tz,
    )

    return RedirectResponse(outcome.redirect_url, status_code=302)
