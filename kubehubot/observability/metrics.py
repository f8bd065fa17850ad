"""Prometheus metrics for kubehubot."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

watch_events_total = Counter(
    "kubehubot_watch_events_total",
    "Watch events delivered to the notification pipeline",
    ["kind", "action"],
)

watch_events_dropped_total = Counter(
    "kubehubot_watch_events_dropped_total",
    "Watch events dropped before notification",
    ["kind", "reason"],
)

notifications_total = Counter(
    "kubehubot_notifications_total",
    "Notification delivery attempts",
    ["success"],
)

active_watches = Gauge(
    "kubehubot_active_watches",
    "Watch subscriptions currently active",
)
