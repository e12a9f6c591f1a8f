"""Tests for structlog setup."""

from __future__ import annotations

import json

import pytest
import structlog

from homebridge_mcp.log import get_logger, setup_logging


@pytest.fixture()
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_json_logs_go_to_stderr(capsys, reset_structlog):
    setup_logging("INFO", "json")

    get_logger("client").info("homebridge_login", url="http://hb:8581")

    captured = capsys.readouterr()
    assert captured.out == ""
    event = json.loads(captured.err.strip())
    assert event["msg"] == "homebridge_login"
    assert event["service"] == "client"
    assert event["level"] == "info"
    assert event["context"] == {"url": "http://hb:8581"}
    assert "timestamp" in event


def test_level_filtering(capsys, reset_structlog):
    setup_logging("WARNING", "json")

    logger = get_logger("client")
    logger.info("dropped")
    logger.warning("kept")

    lines = capsys.readouterr().err.strip().splitlines()
    assert [json.loads(line)["msg"] for line in lines] == ["kept"]
