import logging.config
import sys

# 외부 라이브러리 로거 - 앱 로그 레벨과 무관하게 WARNING 이상만 출력
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore")

SIMPLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s\n"
    "%(pathname)s:%(lineno)d\n%(message)s"
)


def build_logging_config(log_level: str = "INFO") -> dict:
    """dictConfig 설정 생성

    - console: stdout, 지정 레벨 이상
    - error_console: stderr, WARNING 이상 (파일 위치 포함)
    - gymapi.*: 원장 서비스 로거, 루트로 전파하지 않음
    """
    level = log_level.upper()
    both = ["console", "error_console"]

    loggers = {
        "": {"handlers": both, "level": level},
        "gymapi": {"handlers": both, "level": level, "propagate": False},
        "uvicorn.error": {"handlers": both, "level": level, "propagate": False},
        "uvicorn.access": {"handlers": ["console"], "level": level, "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {
            "handlers": ["error_console"],
            "level": "WARNING",
            "propagate": False,
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {"format": SIMPLE_FORMAT},
            "detailed": {"format": DETAILED_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
                "stream": sys.stdout,
            },
            "error_console": {
                "class": "logging.StreamHandler",
                "formatter": "detailed",
                "stream": sys.stderr,
                "level": "WARNING",
            },
        },
        "loggers": loggers,
    }


def setup_logging(log_level: str = "INFO") -> None:
    logging.config.dictConfig(build_logging_config(log_level))
