"""Alert lifecycle, timeout-driven escalation and its background loop."""

from fortify_alerts.escalation.scheduler import AlertEscalationScheduler, base_url_links
from fortify_alerts.escalation.ticker import EscalationTicker

__all__ = [
    "AlertEscalationScheduler",
    "EscalationTicker",
    "base_url_links",
]
