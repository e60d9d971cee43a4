"""
Shared branded email layout.

Every template wraps its content with ``wrap_html()`` so outgoing mail
looks the same. Helpers render the common blocks (detail box, CTA, notice).

Usage:
    from services.communications_service.templates.base import wrap_html, detail_box

    html = wrap_html(
        title="Order confirmed",
        body_html="<p>Hi Thandi,</p>" + detail_box({"Order": "RB-..."}),
    )
"""

from html import escape

# ─── Color presets ────────────────────────────────────────────────────
GRADIENT_BRAND = "linear-gradient(135deg, #3ab26f 0%, #2a8f58 100%)"
GRADIENT_AMBER = "linear-gradient(135deg, #f59e0b 0%, #d97706 100%)"
GRADIENT_RED = "linear-gradient(135deg, #ef4444 0%, #b91c1c 100%)"
GRADIENT_BLUE = "linear-gradient(135deg, #0ea5e9 0%, #0369a1 100%)"


def wrap_html(
    title: str,
    body_html: str,
    subtitle: str = "",
    header_gradient: str = GRADIENT_BRAND,
    preheader: str = "",
) -> str:
    """Wrap inner content in the branded layout.

    Args:
        title: Heading shown in the coloured header banner.
        body_html: Main content (already-formatted HTML).
        subtitle: Smaller text below the title.
        header_gradient: CSS gradient for the header background.
        preheader: Hidden preview text shown in inbox list view.
    """
    subtitle_html = (
        f'<p style="margin: 8px 0 0 0; opacity: 0.9; font-size: 15px;">{subtitle}</p>'
        if subtitle
        else ""
    )
    preheader_html = (
        f'<span style="display:none;max-height:0;overflow:hidden;">{preheader}</span>'
        if preheader
        else ""
    )
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>{title}</title>
</head>
<body style="margin:0;padding:0;background:#f1f5f9;font-family:-apple-system,'Segoe UI',Roboto,Arial,sans-serif;color:#334155;line-height:1.6;">
{preheader_html}
<div style="max-width:600px;margin:0 auto;padding:32px 16px;">
  <div style="background:{header_gradient};color:#ffffff;padding:28px 32px;border-radius:16px 16px 0 0;">
    <h1 style="margin:0;font-size:22px;">{title}</h1>
    {subtitle_html}
  </div>
  <div style="background:#ffffff;padding:28px 32px;border-radius:0 0 16px 16px;">
    {body_html}
    <p style="margin-top:28px;">The ReBooked Solutions Team</p>
  </div>
  <p style="text-align:center;font-size:12px;color:#94a3b8;">
    ReBooked Solutions, the textbook marketplace for South African students.
  </p>
</div>
</body>
</html>
"""


def detail_box(items: dict[str, str], accent_color: str = "#3ab26f") -> str:
    """Render label/value rows; empty values are skipped."""
    rows = "".join(
        f'<div style="padding:4px 0;"><strong>{escape(label)}:</strong> {escape(str(value))}</div>'
        for label, value in items.items()
        if value
    )
    return (
        f'<div style="border-left:4px solid {accent_color};background:#f8fafc;'
        f'padding:16px 20px;margin:20px 0;border-radius:0 8px 8px 0;">{rows}</div>'
    )


def cta_button(label: str, url: str, color: str = "#3ab26f") -> str:
    return (
        f'<div style="text-align:center;margin:24px 0;">'
        f'<a href="{url}" style="background:{color};color:#ffffff;padding:12px 28px;'
        f'border-radius:8px;text-decoration:none;font-weight:600;">{label}</a></div>'
    )


def notice(content: str, bg_color: str = "#fffbeb", border_color: str = "#f59e0b") -> str:
    return (
        f'<div style="background:{bg_color};border-left:4px solid {border_color};'
        f'padding:14px 18px;border-radius:0 8px 8px 0;margin:20px 0;">{content}</div>'
    )
