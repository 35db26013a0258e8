"""
Tests for the pipeline logger.
"""
import logging

from socratic_assessor.utils import LogLevel, create_logger


class TestPipelineLogger:
    """Tests for verbosity gating, metrics and timings."""

    def test_unknown_level_name_is_standard(self):
        assert LogLevel.from_name("chatty") is LogLevel.STANDARD
        assert LogLevel.from_name(" Verbose ") is LogLevel.VERBOSE
        assert LogLevel.from_name(None) is LogLevel.STANDARD

    def test_minimal_hides_phases_but_not_warnings(self, caplog):
        pipeline_logger = create_logger("TEST", LogLevel.MINIMAL)

        with caplog.at_level(logging.DEBUG):
            pipeline_logger.phase("Starting")
            pipeline_logger.warning("Fallback used")

        assert "Starting" not in caplog.text
        assert "[TEST] ⚠️ Fallback used" in caplog.text

    def test_verbose_flag_overrides_level(self):
        assert create_logger("TEST", LogLevel.MINIMAL, verbose=True).level is LogLevel.VERBOSE

    def test_metrics_and_timings_in_summary(self):
        pipeline_logger = create_logger("TEST")
        pipeline_logger.metric("chunks_created", 4)

        with pipeline_logger.timer("Embedding"):
            pass

        summary = pipeline_logger.summary()
        assert "chunks_created: 4" in summary
        assert "Embedding" in pipeline_logger.timings
        assert "Embedding:" in summary

    def test_slow_operation_warns(self, caplog):
        pipeline_logger = create_logger("TEST")

        with caplog.at_level(logging.WARNING):
            with pipeline_logger.timer("Summary generation", warn_threshold_ms=-1):
                pass

        assert "Slow operation: Summary generation" in caplog.text
