"""SVG spider graph for social-preview cards.

Output is static markup with no script, so link-preview crawlers can render
it directly. Rendering is deterministic for a given input.
"""
import logging
import math
from html import escape
from typing import Any

from ethos_spider.config import public_url

_log = logging.getLogger(__name__)

WIDTH = 800
HEIGHT = 600
CENTER_X = 400
CENTER_Y = 300
MAX_RADIUS = 120
LABEL_OFFSET = 25
MAX_CATEGORIES = 8
GRID_FACTORS = (0.2, 0.4, 0.6, 0.8, 1.0)

FONT = 'font-family="Inter, sans-serif"'

_BACKGROUND = """<linearGradient id="bg" x1="0%" y1="0%" x2="100%" y2="100%">
      <stop offset="0%" style="stop-color:#1E293B;stop-opacity:1" />
      <stop offset="100%" style="stop-color:#0F172A;stop-opacity:1" />
    </linearGradient>"""

_SPIDER_FILL = """<linearGradient id="spider" x1="0%" y1="0%" x2="100%" y2="100%">
      <stop offset="0%" style="stop-color:#6366F1;stop-opacity:0.8" />
      <stop offset="100%" style="stop-color:#8B5CF6;stop-opacity:0.6" />
    </linearGradient>"""


def _num(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _footer() -> str:
    host = public_url().split("://", 1)[-1].rstrip("/")
    return (
        f'<text x="400" y="550" text-anchor="middle" fill="#64748B" {FONT} font-size="14">'
        f"AI-powered profile analysis • {escape(host)}</text>"
    )


def select_categories(scores: dict[str, Any]) -> list[tuple[str, float]]:
    """Positive numeric scores only, highest first (stable on ties), at most eight."""
    positive = [
        (name, float(value))
        for name, value in scores.items()
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
    ]
    positive.sort(key=lambda item: item[1], reverse=True)
    return positive[:MAX_CATEGORIES]


def _point(index: int, count: int, radius: float) -> tuple[float, float]:
    angle = index * 2 * math.pi / count - math.pi / 2
    return CENTER_X + math.cos(angle) * radius, CENTER_Y + math.sin(angle) * radius


def render_fallback(username: str, name: str) -> str:
    return f"""<svg width="{WIDTH}" height="{HEIGHT}" xmlns="http://www.w3.org/2000/svg">
  <defs>
    {_BACKGROUND}
  </defs>
  <rect width="{WIDTH}" height="{HEIGHT}" fill="url(#bg)"/>
  <text x="400" y="200" text-anchor="middle" fill="#F1F5F9" {FONT} font-size="32" font-weight="700">Ethos Spider Graph</text>
  <text x="400" y="280" text-anchor="middle" fill="#CBD5E1" {FONT} font-size="24" font-weight="600">{escape(name)}</text>
  <text x="400" y="320" text-anchor="middle" fill="#94A3B8" {FONT} font-size="18">@{escape(username)}</text>
  <text x="400" y="380" text-anchor="middle" fill="#64748B" {FONT} font-size="16">Profile analysis coming soon...</text>
  {_footer()}
</svg>
"""


def render_spider_graph(username: str, name: str, scores: dict[str, Any]) -> str:
    categories = select_categories(scores)
    if not categories:
        return render_fallback(username, name)

    count = len(categories)
    points = [_point(i, count, value * MAX_RADIUS) for i, (_, value) in enumerate(categories)]
    path = " ".join(
        f"{'M' if i == 0 else 'L'} {_num(x)} {_num(y)}" for i, (x, y) in enumerate(points)
    ) + " Z"

    grid = "\n  ".join(
        f'<circle cx="{CENTER_X}" cy="{CENTER_Y}" r="{_num(MAX_RADIUS * f)}" fill="none" '
        f'stroke="#374151" stroke-width="1" opacity="0.3"/>'
        for f in GRID_FACTORS
    )

    axes = []
    labels = []
    for i, (category, _) in enumerate(categories):
        x2, y2 = _point(i, count, MAX_RADIUS)
        axes.append(
            f'<line x1="{CENTER_X}" y1="{CENTER_Y}" x2="{_num(x2)}" y2="{_num(y2)}" '
            f'stroke="#374151" stroke-width="1" opacity="0.3"/>'
        )
        lx, ly = _point(i, count, MAX_RADIUS + LABEL_OFFSET)
        labels.append(
            f'<text x="{_num(lx)}" y="{_num(ly)}" text-anchor="middle" dominant-baseline="central" '
            f'fill="#F1F5F9" {FONT} font-size="11" font-weight="500">{escape(category)}</text>'
        )

    dots = "\n  ".join(
        f'<circle cx="{_num(x)}" cy="{_num(y)}" r="4" fill="#6366F1" stroke="#1E293B" stroke-width="2"/>'
        for x, y in points
    )
    axis_lines = "\n  ".join(axes)
    label_text = "\n  ".join(labels)

    return f"""<svg width="{WIDTH}" height="{HEIGHT}" xmlns="http://www.w3.org/2000/svg">
  <defs>
    {_BACKGROUND}
    {_SPIDER_FILL}
  </defs>
  <rect width="{WIDTH}" height="{HEIGHT}" fill="url(#bg)"/>
  <text x="400" y="60" text-anchor="middle" fill="#F1F5F9" {FONT} font-size="32" font-weight="700">Ethos Spider Graph</text>
  <text x="400" y="100" text-anchor="middle" fill="#CBD5E1" {FONT} font-size="20" font-weight="600">{escape(name)}</text>
  <text x="400" y="125" text-anchor="middle" fill="#94A3B8" {FONT} font-size="16">@{escape(username)}</text>
  {grid}
  {axis_lines}
  <path d="{path}" fill="url(#spider)" stroke="#6366F1" stroke-width="2"/>
  {dots}
  {label_text}
  {_footer()}
</svg>
"""


def render_preview(username: str, name: str, scores: dict[str, Any] | None) -> str:
    """Spider graph when scores are available, fallback card otherwise. Never raises."""
    try:
        if scores is None:
            return render_fallback(username, name)
        return render_spider_graph(username, name, scores)
    except Exception:
        _log.exception("Failed to render preview for @%s", username)
        return render_fallback(str(username), str(name))
