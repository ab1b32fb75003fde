"""Tenant utilization and the health status derived from it."""

from __future__ import annotations

from dataclasses import dataclass

CRITICAL_THRESHOLD = 90.0
WARNING_THRESHOLD = 80.0


@dataclass
class UsageFigures:
    current_users: float = 0
    max_users: float = 25
    current_customers: float = 0
    max_customers: float = 1000
    current_visits: float = 0
    max_visits: float = 5000
    current_storage_gb: float = 0
    max_storage_gb: float = 10


def _percentage(current: float, maximum: float) -> float:
    if not maximum:
        return 0.0
    return current / maximum * 100


def average_usage_percentage(usage: UsageFigures) -> float:
    """Mean utilization across users, customers, visits and storage."""
    parts = (
        _percentage(usage.current_users, usage.max_users),
        _percentage(usage.current_customers, usage.max_customers),
        _percentage(usage.current_visits, usage.max_visits),
        _percentage(usage.current_storage_gb, usage.max_storage_gb),
    )
    return sum(parts) / len(parts)


def health_status_for(avg_usage: float) -> str:
    if avg_usage >= CRITICAL_THRESHOLD:
        return "critical"
    if avg_usage >= WARNING_THRESHOLD:
        return "warning"
    return "healthy"
