import logging
import os
import sys
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

NULL_LOGGER_NAME = "aca_deploy_kit.null"


def setup_logging(verbosity: int = 0, log_file: Optional[str] = None) -> None:
    level = logging.INFO
    if verbosity >= 1:
        level = logging.DEBUG

    # 로그 라인은 INFO/WARN/ERROR 표기를 사용한다.
    logging.addLevelName(logging.WARNING, "WARN")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        parent = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(parent, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_null_logger() -> logging.Logger:
    """아무 것도 출력하지 않는 로거 (테스트/라이브러리 사용 시)."""
    logger = logging.getLogger(NULL_LOGGER_NAME)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return logger
