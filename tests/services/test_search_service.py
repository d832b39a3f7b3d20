"""
Tests for the user content search service.

Tests cover:
- search_user_content: success envelope, default RPC parameters
- Access control (AccessDenied, Unauthenticated) without touching the RPC
- Parameter validation before any identity lookup
- Database and unexpected failures reported through the envelope
- Text, multi-topic and preset searches (embedding mocked)
- merge/deduplicate helpers and the performance tracker

Note: Supabase is a MagicMock and embeddings are patched, so no network
calls are made.
"""

import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from postgrest.exceptions import APIError

from content_search.config import settings
from content_search.schemas.search import (
    SearchError,
    SearchOptions,
    SearchUserContentResponse,
    SearchUserContentResult,
)
from content_search.services.search_service import (
    SearchPerformanceTracker,
    deduplicate_search_results,
    merge_search_results,
    search_user_content,
    search_user_content_broad,
    search_user_content_by_date_range,
    search_user_content_by_source_type,
    search_user_content_by_text,
    search_user_content_by_topics,
    search_user_content_high_precision,
)
from content_search.utils.errors import EmbeddingError
from conftest import OTHER_USER_ID, TEST_USER_ID, StaticSessionProvider, make_search_row

EMBED_PATH = "content_search.services.search_service.generate_text_embedding"


def _set_rpc_rows(supabase_client, rows):
    response = MagicMock()
    response.data = rows
    supabase_client.rpc.return_value.execute.return_value = response


def _rpc_params(supabase_client):
    args, _ = supabase_client.rpc.call_args
    return args[1]


def _result(content_id, similarity=0.8):
    return SearchUserContentResult.model_validate(make_search_row(content_id, similarity))


# =============================================================================
# search_user_content
# =============================================================================

class TestSearchUserContent:

    @pytest.mark.asyncio
    async def test_returns_results_for_own_content(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [make_search_row("c1", 0.91), make_search_row("c2", 0.75)])

        response = await search_user_content(
            supabase_client,
            session_provider,
            {"target_user_id": TEST_USER_ID, "query_vector": test_vector},
        )

        assert response.error is None
        assert response.total_count == 2
        assert [r.id for r in response.results] == ["c1", "c2"]
        assert response.execution_time_ms is not None
        assert response.execution_time_ms >= 0
        assert session_provider.calls == 1

    @pytest.mark.asyncio
    async def test_applies_default_rpc_parameters(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [])

        await search_user_content(
            supabase_client,
            session_provider,
            {"target_user_id": TEST_USER_ID, "query_vector": test_vector},
        )

        supabase_client.rpc.assert_called_once_with(
            "search_user_content",
            {
                "target_user_id": TEST_USER_ID,
                "query_vector": test_vector,
                "search_similarity_threshold": 0.7,
                "match_count": 10,
                "start_date": None,
                "end_date": None,
                "source_type_filter": None,
                "active_only": True,
            },
        )

    @pytest.mark.asyncio
    async def test_explicit_zero_values_are_passed_through(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [])

        await search_user_content(
            supabase_client,
            session_provider,
            {
                "target_user_id": TEST_USER_ID,
                "query_vector": test_vector,
                "search_similarity_threshold": 0.0,
                "match_count": 0,
                "active_only": False,
            },
        )

        params = _rpc_params(supabase_client)
        assert params["search_similarity_threshold"] == 0.0
        assert params["match_count"] == 0
        assert params["active_only"] is False

    @pytest.mark.asyncio
    async def test_access_denied_for_other_user(self, supabase_client, session_provider, test_vector):
        response = await search_user_content(
            supabase_client,
            session_provider,
            {"target_user_id": OTHER_USER_ID, "query_vector": test_vector},
        )

        assert response.error is not None
        assert response.error.code == "AccessDenied"
        assert response.results == []
        assert response.total_count == 0
        supabase_client.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_unauthenticated_session(self, supabase_client, test_vector):
        provider = StaticSessionProvider(user_id=None)

        response = await search_user_content(
            supabase_client,
            provider,
            {"target_user_id": TEST_USER_ID, "query_vector": test_vector},
        )

        assert response.error.code == "Unauthenticated"
        assert response.results == []
        supabase_client.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_vector_fails_before_identity_lookup(self, supabase_client, session_provider):
        response = await search_user_content(
            supabase_client,
            session_provider,
            {"target_user_id": TEST_USER_ID, "query_vector": [0.1] * 10},
        )

        assert response.error.code == "InvalidParameters"
        assert response.total_count == 0
        assert session_provider.calls == 0
        supabase_client.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_threshold(self, supabase_client, session_provider, test_vector):
        response = await search_user_content(
            supabase_client,
            session_provider,
            {"target_user_id": TEST_USER_ID, "query_vector": test_vector, "search_similarity_threshold": 1.5},
        )

        assert response.error.code == "InvalidParameters"
        supabase_client.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_database_error_is_reported(self, supabase_client, session_provider, test_vector):
        supabase_client.rpc.return_value.execute.side_effect = APIError({
            "message": "function search_user_content does not exist",
            "code": "42883",
            "details": "No function matches the given name",
            "hint": "Run the migrations",
        })

        response = await search_user_content(
            supabase_client,
            session_provider,
            {"target_user_id": TEST_USER_ID, "query_vector": test_vector},
        )

        assert response.error.code == "DatabaseError"
        assert "function search_user_content does not exist" in response.error.message
        assert "Run the migrations" in response.error.details
        assert response.results == []
        assert response.total_count == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported(self, supabase_client, session_provider, test_vector):
        supabase_client.rpc.return_value.execute.side_effect = RuntimeError("connection reset")

        response = await search_user_content(
            supabase_client,
            session_provider,
            {"target_user_id": TEST_USER_ID, "query_vector": test_vector},
        )

        assert response.error.code == "UnknownError"
        assert response.error.message == "connection reset"
        assert response.error.details == "RuntimeError"

    @pytest.mark.asyncio
    async def test_rows_are_not_rechecked(self, supabase_client, session_provider, test_vector):
        row = make_search_row("c1", similarity=1.0000001, source_type="podcast")
        row["metadata"]["metadata"] = None
        row["metadata"]["embedding_created_at"] = None
        row["source_url"] = None
        _set_rpc_rows(supabase_client, [row, make_search_row("c2", 0.8)])

        response = await search_user_content(
            supabase_client,
            session_provider,
            {"target_user_id": TEST_USER_ID, "query_vector": test_vector},
        )

        assert response.error is None
        assert response.total_count == 2
        assert response.results[0].similarity == 1.0000001
        assert response.results[0].source_type == "podcast"
        assert response.results[0].metadata.metadata is None

    @pytest.mark.asyncio
    async def test_row_without_id_is_reported(self, supabase_client, session_provider, test_vector):
        row = make_search_row("c1")
        del row["id"]
        _set_rpc_rows(supabase_client, [row])

        response = await search_user_content(
            supabase_client,
            session_provider,
            {"target_user_id": TEST_USER_ID, "query_vector": test_vector},
        )

        assert response.error.code == "UnknownError"
        assert response.results == []

    @pytest.mark.asyncio
    async def test_session_outage_is_unknown_error(self, supabase_client, test_vector):
        provider = StaticSessionProvider()
        provider.get_current_identity = AsyncMock(side_effect=ConnectionError("auth unreachable"))

        response = await search_user_content(
            supabase_client,
            provider,
            {"target_user_id": TEST_USER_ID, "query_vector": test_vector},
        )

        assert response.error.code == "UnknownError"
        assert response.error.details == "ConnectionError"
        supabase_client.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_repeated_searches_are_identical(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [make_search_row("c1", 0.9), make_search_row("c2", 0.8)])
        params = {"target_user_id": TEST_USER_ID, "query_vector": test_vector}

        first = await search_user_content(supabase_client, session_provider, params)
        second = await search_user_content(supabase_client, session_provider, params)

        assert first.results == second.results
        assert first.total_count == second.total_count
        # identity is resolved again for every call
        assert session_provider.calls == 2

    @pytest.mark.asyncio
    async def test_zero_vector_with_small_match_count(self, supabase_client, session_provider):
        _set_rpc_rows(supabase_client, [make_search_row(f"c{i}", 0.7, match_count=5) for i in range(5)])

        response = await search_user_content(
            supabase_client,
            session_provider,
            {"target_user_id": TEST_USER_ID, "query_vector": [0.0] * 1536, "match_count": 5},
        )

        assert response.error is None
        assert response.total_count <= 5
        assert _rpc_params(supabase_client)["match_count"] == 5

    @pytest.mark.asyncio
    async def test_slow_search_logs_warning(self, supabase_client, session_provider, test_vector, caplog):
        _set_rpc_rows(supabase_client, [])

        with patch.object(settings, "SEARCH_WARNING_THRESHOLD_MS", -1):
            with caplog.at_level(logging.WARNING, logger="content_search.services.search_service"):
                response = await search_user_content(
                    supabase_client,
                    session_provider,
                    {"target_user_id": TEST_USER_ID, "query_vector": test_vector},
                )

        assert response.error is None
        assert "performance warning" in caplog.text


# =============================================================================
# TEXT AND PRESET SEARCHES
# =============================================================================

class TestSearchUserContentByText:

    @pytest.mark.asyncio
    async def test_embeds_text_and_searches(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [make_search_row("c1", 0.88)])

        with patch(EMBED_PATH, new=AsyncMock(return_value=test_vector)) as mock_embed:
            response = await search_user_content_by_text(
                supabase_client, session_provider, TEST_USER_ID, "rust async runtime"
            )

        mock_embed.assert_awaited_once_with("rust async runtime")
        assert response.error is None
        assert response.total_count == 1
        assert _rpc_params(supabase_client)["query_vector"] == test_vector

    @pytest.mark.asyncio
    async def test_embedding_failure_returns_text_search_error(self, supabase_client, session_provider):
        failing = AsyncMock(side_effect=EmbeddingError("Failed to generate text embedding: quota exceeded"))

        with patch(EMBED_PATH, new=failing):
            response = await search_user_content_by_text(
                supabase_client, session_provider, TEST_USER_ID, "anything"
            )

        assert response.error.code == "TextSearchError"
        assert "quota exceeded" in response.error.message
        assert response.results == []
        supabase_client.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_options_cannot_override_target_user(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [])

        with patch(EMBED_PATH, new=AsyncMock(return_value=test_vector)):
            await search_user_content_by_text(
                supabase_client,
                session_provider,
                TEST_USER_ID,
                "query",
                {"target_user_id": OTHER_USER_ID, "match_count": 3},
            )

        params = _rpc_params(supabase_client)
        assert params["target_user_id"] == TEST_USER_ID
        assert params["match_count"] == 3

    @pytest.mark.asyncio
    async def test_other_user_is_denied(self, supabase_client, session_provider, test_vector):
        with patch(EMBED_PATH, new=AsyncMock(return_value=test_vector)):
            response = await search_user_content_by_text(
                supabase_client, session_provider, OTHER_USER_ID, "query"
            )

        assert response.error.code == "AccessDenied"
        supabase_client.rpc.assert_not_called()


class TestSearchUserContentByTopics:

    @pytest.mark.asyncio
    async def test_one_failed_topic_does_not_affect_others(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [make_search_row("c1", 0.8)])

        async def fake_embed(text):
            if text == "golang":
                raise EmbeddingError("Failed to generate text embedding: rate limited")
            return test_vector

        with patch(EMBED_PATH, new=AsyncMock(side_effect=fake_embed)):
            responses = await search_user_content_by_topics(
                supabase_client, session_provider, TEST_USER_ID, ["rust", "golang"]
            )

        assert len(responses) == 2
        assert responses[0].error is None
        assert responses[0].total_count == 1
        assert responses[1].error.code == "TextSearchError"
        assert responses[1].results == []

    @pytest.mark.asyncio
    async def test_catastrophic_failure_returns_error_per_topic(self, supabase_client, session_provider):
        with patch(
            "content_search.services.search_service.search_user_content_by_text",
            new=AsyncMock(side_effect=RuntimeError("event loop closed")),
        ):
            responses = await search_user_content_by_topics(
                supabase_client, session_provider, TEST_USER_ID, ["a", "b", "c"]
            )

        assert len(responses) == 3
        assert all(r.error.code == "MultiTopicSearchError" for r in responses)

    @pytest.mark.asyncio
    async def test_empty_topics(self, supabase_client, session_provider):
        responses = await search_user_content_by_topics(supabase_client, session_provider, TEST_USER_ID, [])
        assert responses == []

    @pytest.mark.asyncio
    async def test_missing_topics(self, supabase_client, session_provider):
        responses = await search_user_content_by_topics(supabase_client, session_provider, TEST_USER_ID, None)
        assert responses == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("topics", [42, "rust"])
    async def test_non_list_topics_return_envelope(self, supabase_client, session_provider, topics):
        responses = await search_user_content_by_topics(supabase_client, session_provider, TEST_USER_ID, topics)

        assert len(responses) == 1
        assert responses[0].error.code == "InvalidParameters"
        supabase_client.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_catastrophic_failure_with_tuple_topics(self, supabase_client, session_provider):
        with patch(
            "content_search.services.search_service.search_user_content_by_text",
            new=AsyncMock(side_effect=RuntimeError("event loop closed")),
        ):
            responses = await search_user_content_by_topics(
                supabase_client, session_provider, TEST_USER_ID, ("a", "b")
            )

        assert [r.error.code for r in responses] == ["MultiTopicSearchError"] * 2


class TestPresetSearches:

    @pytest.mark.asyncio
    async def test_date_range(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [])

        with patch(EMBED_PATH, new=AsyncMock(return_value=test_vector)):
            await search_user_content_by_date_range(
                supabase_client,
                session_provider,
                TEST_USER_ID,
                "release notes",
                datetime(2024, 1, 1, tzinfo=timezone.utc),
                datetime(2024, 6, 30, 23, 59, 59, tzinfo=timezone.utc),
            )

        params = _rpc_params(supabase_client)
        assert params["start_date"] == "2024-01-01T00:00:00+00:00"
        assert params["end_date"] == "2024-06-30T23:59:59+00:00"

    @pytest.mark.asyncio
    async def test_date_range_accepts_iso_strings(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [])

        with patch(EMBED_PATH, new=AsyncMock(return_value=test_vector)):
            response = await search_user_content_by_date_range(
                supabase_client,
                session_provider,
                TEST_USER_ID,
                "release notes",
                "2024-01-01T00:00:00Z",
                "2024-12-31T09:00:00+09:00",
            )

        assert response.error is None
        params = _rpc_params(supabase_client)
        assert params["start_date"] == "2024-01-01T00:00:00+00:00"
        assert params["end_date"] == "2024-12-31T00:00:00+00:00"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("start_date", ["last tuesday", 20240101, None])
    async def test_date_range_invalid_dates_return_envelope(self, supabase_client, session_provider, start_date):
        embed = AsyncMock()

        with patch(EMBED_PATH, new=embed):
            response = await search_user_content_by_date_range(
                supabase_client,
                session_provider,
                TEST_USER_ID,
                "release notes",
                start_date,
                "2024-12-31T00:00:00Z",
            )

        assert response.error.code == "InvalidParameters"
        assert response.results == []
        embed.assert_not_called()
        supabase_client.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_source_type(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [make_search_row("c1", 0.8, source_type="rss")])

        with patch(EMBED_PATH, new=AsyncMock(return_value=test_vector)):
            response = await search_user_content_by_source_type(
                supabase_client, session_provider, TEST_USER_ID, "feeds", "rss"
            )

        assert _rpc_params(supabase_client)["source_type_filter"] == "rss"
        assert response.results[0].source_type == "rss"

    @pytest.mark.asyncio
    async def test_high_precision_overrides_threshold(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [])

        with patch(EMBED_PATH, new=AsyncMock(return_value=test_vector)):
            await search_user_content_high_precision(
                supabase_client,
                session_provider,
                TEST_USER_ID,
                "query",
                SearchOptions(search_similarity_threshold=0.2, match_count=4),
            )

        params = _rpc_params(supabase_client)
        assert params["search_similarity_threshold"] == 0.85
        assert params["match_count"] == 4

    @pytest.mark.asyncio
    async def test_broad(self, supabase_client, session_provider, test_vector):
        _set_rpc_rows(supabase_client, [])

        with patch(EMBED_PATH, new=AsyncMock(return_value=test_vector)):
            await search_user_content_broad(supabase_client, session_provider, TEST_USER_ID, "query")

        assert _rpc_params(supabase_client)["search_similarity_threshold"] == 0.5


# =============================================================================
# RESULT HELPERS
# =============================================================================

class TestMergeSearchResults:

    def test_deduplicate_keeps_first_occurrence(self):
        results = [_result("a", 0.9), _result("b", 0.8), _result("a", 0.7)]

        unique = deduplicate_search_results(results)

        assert [r.id for r in unique] == ["a", "b"]
        assert unique[0].similarity == 0.9

    def test_merge_combines_and_deduplicates(self):
        first = SearchUserContentResponse(
            results=[_result("a"), _result("b")], execution_time_ms=10.0, total_count=2
        )
        second = SearchUserContentResponse(
            results=[_result("b"), _result("c")], execution_time_ms=5.5, total_count=2
        )

        merged = merge_search_results([first, second])

        assert [r.id for r in merged.results] == ["a", "b", "c"]
        assert merged.total_count == 3
        assert merged.execution_time_ms == 15.5
        assert merged.error is None

    def test_merge_reports_multiple_errors(self):
        ok = SearchUserContentResponse(results=[_result("a")], execution_time_ms=1.0, total_count=1)
        failed = SearchUserContentResponse(
            results=[],
            total_count=0,
            error=SearchError(code="TextSearchError", message="embedding failed"),
        )

        merged = merge_search_results([ok, failed, failed])

        assert merged.total_count == 1
        assert merged.error.code == "MultipleErrors"
        assert merged.error.message == "2 errors occurred during search"
        assert "TextSearchError" in merged.error.details


class TestSearchPerformanceTracker:

    def test_empty_stats(self):
        stats = SearchPerformanceTracker().stats()

        assert stats.total_searches == 0
        assert stats.success_rate == 0

    def test_stats_over_samples(self):
        tracker = SearchPerformanceTracker()
        tracker.record(10.0, False)
        tracker.record(30.0, False)
        tracker.record(20.0, True)
        tracker.record(40.0, False)

        stats = tracker.stats()

        assert stats.total_searches == 4
        assert stats.average_execution_time == 25.0
        assert stats.max_execution_time == 40.0
        assert stats.min_execution_time == 10.0
        assert stats.success_rate == 0.75

    def test_history_is_bounded(self):
        tracker = SearchPerformanceTracker(max_history=3)
        for value in (100.0, 1.0, 2.0, 3.0):
            tracker.record(value, False)

        stats = tracker.stats()

        assert stats.total_searches == 3
        assert stats.max_execution_time == 3.0

    def test_record_response_and_reset(self):
        tracker = SearchPerformanceTracker()
        tracker.record_response(SearchUserContentResponse(results=[], execution_time_ms=5.0))
        tracker.record_response(SearchUserContentResponse(
            results=[], error=SearchError(code="AccessDenied", message="denied")
        ))

        assert tracker.stats().success_rate == 0.5

        tracker.reset()
        assert tracker.stats().total_searches == 0
