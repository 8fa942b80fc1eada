"""Tests for structured logging configuration."""
import json
import logging
import os
from unittest.mock import MagicMock, patch

import pytest

from leadmatch.logging_config import AUDIT_FIELDS, JSONFormatter, configure_logging


@pytest.fixture(autouse=True)
def _reset_root_logger():
    """Reset root logger state after each test."""
    root = logging.getLogger()
    original_level = root.level
    original_handlers = root.handlers[:]
    yield
    root.setLevel(original_level)
    root.handlers = original_handlers


def _json_entry(capsys):
    return json.loads(capsys.readouterr().err.strip().splitlines()[-1])


class TestConfigureLogging:

    def test_default_level_is_info(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop('LOG_LEVEL', None)
            configure_logging()
        assert logging.getLogger().level == logging.INFO

    @pytest.mark.parametrize('value,expected', [
        ('DEBUG', logging.DEBUG),
        ('warning', logging.WARNING),
        ('NONSENSE', logging.INFO),
    ])
    def test_log_level_from_env(self, value, expected):
        with patch.dict(os.environ, {'LOG_LEVEL': value}):
            configure_logging()
        assert logging.getLogger().level == expected

    def test_text_format(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'text'}):
            configure_logging()
        logging.getLogger('services.proposals').info("Proposal 3 submitted")
        output = capsys.readouterr().err
        assert 'services.proposals' in output
        assert 'Proposal 3 submitted' in output
        assert 'INFO' in output

    def test_json_format(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json'}):
            configure_logging()
        logging.getLogger('services.expiry').info("Archived %d expired leads", 4)
        entry = _json_entry(capsys)
        assert entry['level'] == 'INFO'
        assert entry['logger'] == 'services.expiry'
        assert entry['message'] == 'Archived 4 expired leads'
        assert 'timestamp' in entry

    def test_json_format_carries_audit_fields(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json'}):
            configure_logging()
        logging.getLogger('services.proposals').info(
            "accepted", extra={'lead_id': 5, 'proposal_id': 9, 'event': 'proposal_accepted'})
        entry = _json_entry(capsys)
        assert entry['lead_id'] == 5
        assert entry['proposal_id'] == 9
        assert entry['event'] == 'proposal_accepted'
        assert 'provider_id' not in entry

    def test_json_format_includes_exception(self, capsys):
        with patch.dict(os.environ, {'LOG_FORMAT': 'json'}):
            configure_logging()
        try:
            raise ValueError("boom")
        except ValueError:
            logging.getLogger('services.repository').error("find_lead failed", exc_info=True)
        entry = _json_entry(capsys)
        assert entry['level'] == 'ERROR'
        assert 'ValueError' in entry['exception']

    def test_third_party_loggers_quieted_to_warning(self):
        configure_logging()
        for name in ['urllib3', 'rq.worker', 'rq.queue', 'redis', 'sqlalchemy.engine']:
            assert logging.getLogger(name).level == logging.WARNING

    def test_no_duplicate_handlers_on_repeated_calls(self):
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_sets_flask_logger_level(self):
        app = MagicMock()
        with patch.dict(os.environ, {'LOG_LEVEL': 'DEBUG'}):
            configure_logging(app)
        app.logger.setLevel.assert_called_once_with(logging.DEBUG)


class TestJSONFormatter:

    def test_non_serializable_extra_is_stringified(self):
        record = logging.LogRecord(
            name='test', level=logging.INFO, pathname='', lineno=0,
            msg='hello %s', args=('world',), exc_info=None,
        )
        record.lead_id = object()
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed['message'] == 'hello world'
        assert parsed['lead_id'].startswith('<object')

    def test_audit_fields_cover_lifecycle_ids(self):
        assert set(AUDIT_FIELDS) >= {'lead_id', 'proposal_id', 'provider_id', 'requester_id'}
