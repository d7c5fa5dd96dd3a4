import logging

from gymapi.logging_config import QUIET_LOGGERS, build_logging_config, setup_logging


class TestLoggingConfig:
    """로깅 설정 테스트"""

    def test_level_is_normalised(self):
        config = build_logging_config("debug")

        assert config["loggers"][""]["level"] == "DEBUG"
        assert config["loggers"]["gymapi"]["level"] == "DEBUG"
        assert config["loggers"]["gymapi"]["propagate"] is False

    def test_library_loggers_stay_quiet(self):
        config = build_logging_config("DEBUG")

        for name in QUIET_LOGGERS:
            assert config["loggers"][name]["level"] == "WARNING"
            assert config["loggers"][name]["handlers"] == ["error_console"]

    def test_setup_applies_levels(self):
        setup_logging("INFO")

        assert logging.getLogger("gymapi").level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
