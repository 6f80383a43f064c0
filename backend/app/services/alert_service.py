"""
Metric alert rules.

Given an aggregate over a recent window, decide which thresholds were
crossed. Three alert kinds mirror the dashboard banners: revenue below a
floor, conversion below a floor, bounce rate above a ceiling.
"""

from dataclasses import asdict, dataclass

from app.core.config import Settings


@dataclass(frozen=True)
class AlertThresholds:
    min_revenue: float
    min_conversion: float
    max_bounce_rate: float

    @classmethod
    def from_settings(cls, settings: Settings) -> "AlertThresholds":
        return cls(
            min_revenue=settings.ALERT_MIN_REVENUE,
            min_conversion=settings.ALERT_MIN_CONVERSION,
            max_bounce_rate=settings.ALERT_MAX_BOUNCE_RATE,
        )


@dataclass(frozen=True)
class MetricAlert:
    type: str  # "revenue" | "conversion" | "bounce"
    message: str
    value: float
    threshold: float

    def to_dict(self) -> dict:
        return asdict(self)


def evaluate_alerts(aggregate: dict, thresholds: AlertThresholds) -> list[MetricAlert]:
    """
    Return the alerts triggered by ``aggregate`` (the dict produced by the
    aggregate query). A window without sessions has nothing to judge.
    """
    if not aggregate.get("total_sessions"):
        return []

    alerts: list[MetricAlert] = []

    revenue = float(aggregate.get("total_revenue", 0))
    if revenue < thresholds.min_revenue:
        alerts.append(MetricAlert(
            type="revenue",
            message=f"Revenue dropped to {revenue:,.2f} (minimum {thresholds.min_revenue:,.2f})",
            value=revenue,
            threshold=thresholds.min_revenue,
        ))

    conversion = float(aggregate.get("avg_conversion", 0))
    if conversion < thresholds.min_conversion:
        alerts.append(MetricAlert(
            type="conversion",
            message=f"Conversion rate fell to {conversion:.2f}% (minimum {thresholds.min_conversion:.2f}%)",
            value=conversion,
            threshold=thresholds.min_conversion,
        ))

    bounce = float(aggregate.get("avg_bounce_rate", 0))
    if bounce > thresholds.max_bounce_rate:
        alerts.append(MetricAlert(
            type="bounce",
            message=f"Bounce rate rose to {bounce:.2f}% (maximum {thresholds.max_bounce_rate:.2f}%)",
            value=bounce,
            threshold=thresholds.max_bounce_rate,
        ))

    return alerts


def render_alert_email(alerts: list[MetricAlert], window_minutes: int) -> tuple[str, str]:
    """Subject and HTML body for an alert e-mail."""
    kinds = ", ".join(sorted({alert.type for alert in alerts}))
    subject = f"[Analytics Alert] {kinds} threshold crossed"
    items = "".join(f"<li>{alert.message}</li>" for alert in alerts)
    html = (
        "<h2>Analytics Alert</h2>"
        f"<p>In the last {window_minutes} minutes:</p>"
        f"<ul>{items}</ul>"
    )
    return subject, html
