"""
Test suite for configuration and structured logging
"""

import json
import logging
from decimal import Decimal

from banking_ledger import config as config_module
from banking_ledger.config import LedgerConfig, get_config, reload_config
from banking_ledger.logging_config import JSONFormatter, get_logger, log_action, setup_logging


class TestLedgerConfig:
    """Test environment-based configuration"""

    def test_defaults(self):
        """Test default configuration values"""
        cfg = LedgerConfig()

        assert cfg.max_login_attempts == 3
        assert cfg.password_min_length == 4
        assert cfg.interest_rate == Decimal('0.03')
        assert cfg.overdraft_limit == Decimal('500.00')
        assert cfg.enable_audit_logging is True

    def test_environment_override(self, monkeypatch):
        """Test LEDGER_ prefixed variables override defaults"""
        monkeypatch.setenv("LEDGER_MAX_LOGIN_ATTEMPTS", "5")
        monkeypatch.setenv("LEDGER_DEFAULT_OVERDRAFT_LIMIT", "250.00")

        cfg = LedgerConfig()
        assert cfg.max_login_attempts == 5
        assert cfg.overdraft_limit == Decimal('250.00')

    def test_reload_config(self, monkeypatch):
        """Test reload replaces the global instance"""
        original = get_config()
        try:
            monkeypatch.setenv("LEDGER_PASSWORD_MIN_LENGTH", "8")
            reloaded = reload_config()

            assert reloaded is get_config()
            assert reloaded.password_min_length == 8
        finally:
            config_module.config = original


class TestStructuredLogging:
    """Test JSON log formatting and log_action"""

    def test_json_formatter_fields(self):
        """Test custom fields are emitted and None values dropped"""
        logger = get_logger("banking_ledger.test")
        record = logger.makeRecord(logger.name, logging.INFO, __name__, 0, "Deposit completed", (), None)
        record.user_id = "alice"
        record.action = "deposit"

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["module"] == "banking_ledger.test"
        assert data["message"] == "Deposit completed"
        assert data["user_id"] == "alice"
        assert data["action"] == "deposit"
        assert "resource" not in data

    def test_log_action_attaches_fields(self, caplog):
        """Test log_action records structured attributes"""
        logger = get_logger("banking_ledger.test")
        logger.setLevel(logging.INFO)

        with caplog.at_level(logging.INFO, logger="banking_ledger.test"):
            log_action(
                logger, "info", "Account created", user_id="admin",
                action="create_account", resource="account:ACC001", extra={"kind": "savings"}
            )

        record = caplog.records[-1]
        assert record.getMessage() == "Account created"
        assert record.user_id == "admin"
        assert record.resource == "account:ACC001"
        assert record.extra == {"kind": "savings"}

    def test_log_action_respects_level(self, caplog):
        """Test records below the logger level are skipped"""
        logger = get_logger("banking_ledger.quiet")
        logger.setLevel(logging.WARNING)

        with caplog.at_level(logging.WARNING, logger="banking_ledger.quiet"):
            log_action(logger, "info", "Should not appear")

        assert not [r for r in caplog.records if r.name == "banking_ledger.quiet"]

    def test_setup_logging(self):
        """Test handler and level configuration"""
        logger = setup_logging(level="DEBUG", logger_name="banking_ledger.setup_test")
        try:
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 1
            assert isinstance(logger.handlers[0].formatter, JSONFormatter)
            assert logger.propagate is False

            setup_logging(level="INFO", logger_name="banking_ledger.setup_test", log_format="text")
            assert len(logger.handlers) == 1
            assert not isinstance(logger.handlers[0].formatter, JSONFormatter)
        finally:
            logger.handlers.clear()
            logger.propagate = True

    def test_setup_logging_reads_config(self):
        """Test level and format default to the configured values"""
        cfg = LedgerConfig(log_level="WARNING", log_format="text")
        logger = setup_logging(logger_name="banking_ledger.config_test", config=cfg)
        try:
            assert logger.level == logging.WARNING
            assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

            setup_logging(logger_name="banking_ledger.config_test",
                          config=LedgerConfig(log_format="json"))
            assert logger.level == logging.INFO
            assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        finally:
            logger.handlers.clear()
            logger.propagate = True
