"""HTML e-mail template for alert notifications."""

from __future__ import annotations

from html import escape as html_escape

from fortify_alerts.notifications.types import NotificationPayload

# Left-border / background colours keyed by severity.
_SEVERITY_STYLES: dict[str, tuple[str, str]] = {
    "CRITICAL": ("#dc2626", "#fee2e2"),
    "HIGH": ("#ea580c", "#fed7aa"),
    "MEDIUM": ("#ca8a04", "#fef3c7"),
    "LOW": ("#2563eb", "#dbeafe"),
}

_BRAND = "FortifyMIS"


def render_email_html(payload: NotificationPayload, body_text: str) -> str:
    """Render the HTML part of an alert e-mail.

    *body_text* is the plain-text rendering; its paragraphs become ``<p>``
    blocks. Every interpolated value is HTML-escaped.
    """
    severity = str(payload.metadata.get("severity", "MEDIUM")).upper()
    border, background = _SEVERITY_STYLES.get(severity, _SEVERITY_STYLES["MEDIUM"])

    paragraphs = "".join(
        f"<p>{html_escape(block).replace(chr(10), '<br>')}</p>"
        for block in body_text.split("\n\n")
        if block.strip()
    )

    rows: list[str] = []
    action = payload.metadata.get("action_required")
    if action:
        rows.append(f"<p><strong>Action Required:</strong> {html_escape(str(action))}</p>")
    deadline = payload.metadata.get("deadline")
    if deadline:
        rows.append(f"<p><strong>Deadline:</strong> {html_escape(str(deadline))}</p>")
    if payload.link:
        rows.append(
            f'<a href="{html_escape(payload.link, quote=True)}" '
            'style="display:inline-block;padding:12px 24px;background:#1a56db;'
            'color:#fff;text-decoration:none;border-radius:6px;margin:20px 0;">'
            "View Details</a>",
        )

    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head>"
        '<body style="font-family:Arial,sans-serif;line-height:1.6;color:#333;">'
        '<div style="max-width:600px;margin:0 auto;padding:20px;">'
        f'<div style="background:#1a56db;color:#fff;padding:20px;text-align:center;">'
        f"<h1>{_BRAND} Alert</h1></div>"
        '<div style="background:#f9fafb;padding:20px;">'
        f"<h2>{html_escape(payload.title)}</h2>"
        f'<div style="border-left:4px solid {border};background:{background};padding:15px;">'
        f"{paragraphs}</div>"
        f"{''.join(rows)}"
        "</div>"
        '<div style="text-align:center;color:#6b7280;font-size:12px;margin-top:20px;">'
        f"<p>This is an automated notification from {_BRAND}</p>"
        "<p>Do not reply to this email</p></div>"
        "</div></body></html>"
    )
