#!/usr/bin/env python3
"""Tests for logger.py.

Output is captured through a temporary file handler since the console
handler is bound to the stream that existed at import time.

Run with: pytest lifting/scripts/tests/test_logger.py -v
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from logger import EngineLogger, get_logger


@pytest.fixture
def log_file(tmp_path):
    logger = get_logger()
    path = tmp_path / 'engine.log'
    handler = logger.add_file_handler(path, json_format=True)
    yield path
    logger.remove_handler(handler)


def _lines(path):
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


class TestSingleton:

    def test_same_instance(self):
        assert get_logger() is get_logger()
        assert EngineLogger() is get_logger()

    def test_name(self):
        assert get_logger().name == 'liftcycle'


class TestStructuredOutput:

    def test_fields_in_json(self, log_file):
        get_logger().warning("Skipping unreadable session record", reason="no date")
        entry = _lines(log_file)[-1]
        assert entry['level'] == 'WARNING'
        assert entry['logger'] == 'liftcycle'
        assert entry['fields'] == {'reason': 'no date'}
        assert entry['timestamp'].endswith('Z')

    def test_debug_reaches_file(self, log_file):
        get_logger().debug("Custom variant recorded", variant="Kettlebell Raise")
        assert _lines(log_file)[-1]['message'].startswith("Custom variant recorded")

    def test_exception_attached(self, log_file):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            get_logger().exception("Unhandled error")
        entry = _lines(log_file)[-1]
        assert entry['level'] == 'ERROR'
        assert 'RuntimeError: boom' in entry['exception']

    def test_success_and_header(self, log_file):
        logger = get_logger()
        logger.header("NEXT SESSION")
        logger.success("Rest day logged")
        messages = [e['message'] for e in _lines(log_file)]
        assert any("NEXT SESSION" in m for m in messages)
        assert any("Rest day logged" in m for m in messages)


class TestHumanMode:

    def test_fields_inline(self, tmp_path):
        logger = get_logger()
        path = tmp_path / 'human.log'
        handler = logger.add_file_handler(path, json_format=False)
        try:
            logger.set_json_mode(False)
            logger.info("Session recorded", template_id='upper_a')
        finally:
            logger.remove_handler(handler)
        assert "Session recorded [template_id=upper_a]" in path.read_text()
