"""Tests for structured log output."""

import io
import logging

from focus_reports.core.logging import StructuredFormatter, log_with_context


def _capture(name: str) -> tuple[logging.Logger, io.StringIO]:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger(name)
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger, stream


def test_context_ids_and_extra_fields_are_rendered():
    logger, stream = _capture("tests.logging.context")

    log_with_context(
        logger, logging.INFO, "Saved memo", report_id="r-1", goal_id="g-1", phase="aiDraft"
    )

    line = stream.getvalue().strip()
    assert "level=INFO" in line
    assert "message=Saved memo" in line
    assert "goal_id=g-1" in line
    assert "report_id=r-1" in line
    assert line.endswith("phase=aiDraft")


def test_exception_text_stays_on_one_line():
    logger, stream = _capture("tests.logging.exc")

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("Failed")

    output = stream.getvalue()
    assert output.count("\n") == 1
    assert "ValueError: boom" in output
