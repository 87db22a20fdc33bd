"""
Tests for logging setup and proctoring log lines
"""

import logging
import pytest


@pytest.fixture
def root_logger():
    """Restore root handlers and level after setup_logging replaces them"""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging"""

    def test_console_only(self, root_logger):
        from examguard.utils import setup_logging

        setup_logging(level="DEBUG", log_to_file=False)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_file_handlers(self, root_logger, tmp_path):
        from examguard.utils import setup_logging

        setup_logging(service_name="examguard", log_to_file=True, log_dir=tmp_path)

        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert (tmp_path / "examguard.log").exists()


class TestProctorLogging:
    """Tests for [PROCTOR] event lines"""

    def test_violation_logged_as_warning(self, caplog):
        from examguard.proctor.utils.logging import log_violation_recorded

        with caplog.at_level(logging.INFO):
            log_violation_recorded("EXM_ABC123", "TALKING_DETECTED", "Warning", "2024-05-01T09:00:00")

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert "[PROCTOR] session=EXM_ABC123 event=violation" in record.getMessage()
        assert "type=TALKING_DETECTED" in record.getMessage()
