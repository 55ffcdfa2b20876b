"""Tests for in-memory query over the contest set."""

from datetime import timedelta

import pytest

from contesthub.ingestion.schemas import ContestStatus
from contesthub.query.filters import (
    MAX_LIMIT,
    ContestQuery,
    apply_query,
    filter_by_date_range,
    filter_by_platforms,
    filter_by_search,
    filter_by_sources,
    filter_by_status,
    platform_stats,
    sort_contests,
)


def _ids(contests):
    return [c.id for c in contests]


class TestFilters:
    """Tests for the individual filters."""

    def test_platform_exact_case_insensitive(self, sample_contests):
        result = filter_by_platforms(sample_contests, ["codeforces"])
        assert _ids(result) == ["codeforces-1", "codeforces-2"]

    def test_platform_substring_fallback(self, sample_contests):
        result = filter_by_platforms(sample_contests, ["code"])
        assert set(_ids(result)) == {
            "codeforces-1",
            "codeforces-2",
            "codechef-START1",
            "leetcode-weekly-contest-400",
        }

    def test_platform_exact_wins_over_substring(self, sample_contests, contest_factory, now):
        contests = sample_contests + [
            contest_factory("x-1", "AtCoder Heuristic", start_time=now + timedelta(days=1))
        ]
        result = filter_by_platforms(contests, ["AtCoder"])
        assert _ids(result) == ["atcoder-abc300"]

    def test_platform_empty_filter(self, sample_contests):
        assert filter_by_platforms(sample_contests, []) == sample_contests

    def test_status(self, sample_contests):
        assert _ids(filter_by_status(sample_contests, ["ongoing"])) == ["codeforces-2"]
        assert _ids(filter_by_status(sample_contests, [ContestStatus.ENDED])) == ["codechef-START1"]

    def test_status_multiple(self, sample_contests):
        result = filter_by_status(sample_contests, ["upcoming", "ongoing"])
        assert "codechef-START1" not in _ids(result)
        assert len(result) == 4

    def test_status_at_reference_time(self, sample_contests, now):
        later = now + timedelta(days=10)
        assert len(filter_by_status(sample_contests, ["ended"], now=later)) == 5

    def test_invalid_status_raises(self, sample_contests):
        with pytest.raises(ValueError):
            filter_by_status(sample_contests, ["finished"])

    def test_date_range_inclusive(self, sample_contests):
        start = sample_contests[0].start_time
        end = sample_contests[4].start_time

        result = filter_by_date_range(sample_contests, start, end)

        assert _ids(result) == ["codeforces-1", "atcoder-abc300"]

    def test_search_name_and_platform(self, sample_contests):
        assert _ids(filter_by_search(sample_contests, "weekly")) == ["leetcode-weekly-contest-400"]
        assert _ids(filter_by_search(sample_contests, "CHEF")) == ["codechef-START1"]
        assert filter_by_search(sample_contests, "  ") == sample_contests

    def test_sources_by_id_prefix(self, sample_contests):
        assert _ids(filter_by_sources(sample_contests, ["leetcode"])) == ["leetcode-weekly-contest-400"]
        assert filter_by_sources(sample_contests, ["all"]) == sample_contests

    def test_platform_stats(self, sample_contests):
        stats = platform_stats(sample_contests)

        assert stats["Codeforces"] == {"total": 2, "upcoming": 1, "ongoing": 1, "ended": 0}
        assert stats["CodeChef"]["ended"] == 1


class TestSorting:
    def test_start_time_ascending_default(self, sample_contests):
        result = sort_contests(sample_contests)
        assert _ids(result) == [
            "codechef-START1",
            "codeforces-2",
            "codeforces-1",
            "atcoder-abc300",
            "leetcode-weekly-contest-400",
        ]

    def test_duration_desc_is_stable(self, sample_contests):
        result = sort_contests(sample_contests, "duration", "desc")
        # 7200s contests keep their input order
        assert _ids(result)[:3] == ["codeforces-1", "codeforces-2", "codechef-START1"]
        assert _ids(result)[-1] == "leetcode-weekly-contest-400"

    def test_name(self, sample_contests):
        result = sort_contests(sample_contests, "name")
        assert result[0].name == "ABC 300"

    def test_platform_desc(self, sample_contests):
        result = sort_contests(sample_contests, "platform", "desc")
        assert result[0].platform == "LeetCode"


class TestContestQuery:
    def test_invalid_sort_field(self):
        with pytest.raises(ValueError):
            ContestQuery(sort_by="rating")

    def test_invalid_order(self):
        with pytest.raises(ValueError):
            ContestQuery(order="up")

    def test_clamps_page_and_limit(self):
        query = ContestQuery(page=0, limit=1000)
        assert query.page == 1
        assert query.limit == MAX_LIMIT

        assert ContestQuery(limit=0).limit == 1


class TestApplyQuery:
    """Tests for apply_query pagination."""

    def test_pagination(self, sample_contests):
        first = apply_query(sample_contests, ContestQuery(page=1, limit=2))
        last = apply_query(sample_contests, ContestQuery(page=3, limit=2))

        assert first.total == 5
        assert first.total_pages == 3
        assert first.count == 2
        assert _ids(last.contests) == ["leetcode-weekly-contest-400"]

    def test_page_past_end_is_empty(self, sample_contests):
        page = apply_query(sample_contests, ContestQuery(page=10, limit=2))

        assert page.contests == []
        assert page.total == 5

    def test_stats_cover_filtered_set_not_page(self, sample_contests):
        page = apply_query(
            sample_contests,
            ContestQuery(statuses=[ContestStatus.UPCOMING], limit=1),
        )

        assert page.count == 1
        assert page.total == 3
        assert sum(s["total"] for s in page.platform_stats.values()) == 3

    def test_empty(self):
        page = apply_query([], ContestQuery())
        assert page.total == 0
        assert page.total_pages == 0

    def test_filters_dict(self, now):
        query = ContestQuery(platforms=["LeetCode"], statuses=[ContestStatus.ONGOING], start_date=now)
        filters = query.filters_dict()

        assert filters["platforms"] == ["LeetCode"]
        assert filters["status"] == ["ongoing"]
        assert filters["startDate"] == now.isoformat()
