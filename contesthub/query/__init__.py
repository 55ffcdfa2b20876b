"""Downstream filtering, sorting and pagination of contests."""

from contesthub.query.filters import (
    ContestPage,
    ContestQuery,
    apply_query,
    platform_stats,
    sort_contests,
)

__all__ = ["ContestPage", "ContestQuery", "apply_query", "platform_stats", "sort_contests"]
