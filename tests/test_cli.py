"""CLI command tests with the services mocked out."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID

from click.testing import CliRunner

from pageadvisor.cli.impact import impact_group
from pageadvisor.cli.suggestions import suggestions_group
from pageadvisor.core.exceptions import AnalysisFailed, PersistenceError
from pageadvisor.services.suggestion_engine.models import (
    ConfidenceLevel,
    ImpactSummary,
    MeasurementBatchResult,
    MeasurementDetail,
    Suggestion,
)

USER_ID = "00000000-0000-0000-0000-000000000001"
PAGE_ID = "00000000-0000-0000-0000-000000000002"
IDS = ["--user", USER_ID, "--page", PAGE_ID]


def _suggestion():
    return Suggestion(
        id=UUID("00000000-0000-0000-0000-000000000010"),
        user_id=UUID(USER_ID),
        landing_page_id=UUID(PAGE_ID),
        title="Name the outcome on the button",
        description="Say what happens after the click.",
        priority="high",
        target_section="cta",
        created_at=datetime(2026, 2, 20, tzinfo=timezone.utc),
    )


class TestSuggestionsCommands:

    def test_help(self):
        result = CliRunner().invoke(suggestions_group, ["analyze", "--help"])

        assert result.exit_code == 0
        assert "--force" in result.output
        assert "--type" in result.output

    @patch("pageadvisor.cli.suggestions.SuggestionGenerator")
    def test_analyze_skips_recent_run(self, mock_generator_cls):
        generator = mock_generator_cls.return_value
        generator.has_recent_analysis = AsyncMock(return_value=datetime(2026, 3, 1, tzinfo=timezone.utc))
        generator.analyze = AsyncMock()

        result = CliRunner().invoke(suggestions_group, ["analyze", *IDS])

        assert result.exit_code == 0
        assert "already ran" in result.output
        generator.analyze.assert_not_called()

    @patch("pageadvisor.cli.suggestions.SuggestionGenerator")
    def test_analyze_force_prints_suggestions(self, mock_generator_cls):
        generator = mock_generator_cls.return_value
        generator.has_recent_analysis = AsyncMock()
        analysis = MagicMock(suggestions=[_suggestion()], tokens_used=900, processing_time_ms=1200)
        analysis.snapshot.is_default = False
        generator.analyze = AsyncMock(return_value=analysis)

        result = CliRunner().invoke(suggestions_group, ["analyze", *IDS, "--force"])

        assert result.exit_code == 0
        assert "1 suggestions saved" in result.output
        assert "[HIGH] Name the outcome on the button" in result.output
        generator.has_recent_analysis.assert_not_called()
        generator.analyze.assert_awaited_once_with(
            UUID(USER_ID), UUID(PAGE_ID), "full", trigger_event="cli"
        )

    @patch("pageadvisor.cli.suggestions.SuggestionGenerator")
    def test_analyze_reports_partial_failure(self, mock_generator_cls):
        generator = mock_generator_cls.return_value
        generator.analyze = AsyncMock(
            side_effect=AnalysisFailed("save_suggestions", RuntimeError("insert rejected"), session_id="s-1")
        )

        result = CliRunner().invoke(suggestions_group, ["analyze", *IDS, "--force"])

        assert result.exit_code != 0
        assert "Analysis failed during save_suggestions" in result.output
        assert "Session s-1 was saved without suggestions" in result.output

    def test_analyze_rejects_bad_uuid(self):
        result = CliRunner().invoke(suggestions_group, ["analyze", "--user", "nope", "--page", PAGE_ID])

        assert result.exit_code != 0

    @patch("pageadvisor.cli.suggestions.SuggestionService")
    def test_list(self, mock_service_cls):
        mock_service_cls.return_value.get_suggestions.return_value = [_suggestion()]

        result = CliRunner().invoke(suggestions_group, ["list", *IDS, "--status", "pending"])

        assert result.exit_code == 0
        assert "2026-02-20" in result.output
        assert "Name the outcome on the button" in result.output
        mock_service_cls.return_value.get_suggestions.assert_called_once_with(
            UUID(USER_ID), UUID(PAGE_ID), status="pending", limit=20
        )


class TestImpactCommands:

    @patch("pageadvisor.cli.impact.ImpactOrchestrator")
    def test_measure_batch(self, mock_orchestrator_cls):
        batch = MeasurementBatchResult(
            measured=1,
            failed=1,
            details=[
                MeasurementDetail(
                    implementation_id=UUID("00000000-0000-0000-0000-000000000101"),
                    success=True,
                    overall_improvement=12.5,
                    confidence=ConfidenceLevel.MEDIUM,
                ),
                MeasurementDetail(
                    implementation_id=UUID("00000000-0000-0000-0000-000000000102"),
                    success=False,
                    error="rpc down",
                ),
            ],
        )
        mock_orchestrator_cls.return_value.measure_pending_impacts = AsyncMock(return_value=batch)

        result = CliRunner().invoke(impact_group, ["measure", "--user", USER_ID])

        assert result.exit_code == 0
        assert "Measured 1, failed 1" in result.output
        assert "12.5% (medium)" in result.output
        assert "rpc down" in result.output

    @patch("pageadvisor.cli.impact.ImpactOrchestrator")
    def test_measure_store_failure_exits_non_zero(self, mock_orchestrator_cls):
        mock_orchestrator_cls.return_value.measure_pending_impacts = AsyncMock(
            side_effect=PersistenceError("find pending implementations", "connection refused")
        )

        result = CliRunner().invoke(impact_group, ["measure", "--user", USER_ID])

        assert result.exit_code != 0
        assert "connection refused" in result.output

    @patch("pageadvisor.cli.impact.ImpactOrchestrator")
    def test_summary(self, mock_orchestrator_cls):
        mock_orchestrator_cls.return_value.get_impact_summary.return_value = ImpactSummary(
            pending_measurements=2,
            insights=["2 implementations ready for impact measurement"],
        )

        result = CliRunner().invoke(impact_group, ["summary", *IDS])

        assert result.exit_code == 0
        assert "Measured implementations: 0" in result.output
        assert "Pending measurements:     2" in result.output

    def test_compare_rejects_unknown_timeframe(self):
        result = CliRunner().invoke(impact_group, ["compare", *IDS, "--timeframe", "year"])

        assert result.exit_code != 0
