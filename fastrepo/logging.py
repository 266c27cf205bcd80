"""FastRepo 로거 설정.

``FASTREPO_LOG_LEVEL`` 환경변수(``DEBUG``, ``WARNING`` 등)로 기본 레벨을 바꿀 수 있습니다.
"""
import logging
import os
from typing import Optional, Union

from uvicorn.logging import DefaultFormatter

LOG_FORMAT = "%(levelprefix)s %(name)s: %(message)s"


def _resolve_level(log_level: Optional[Union[int, str]]) -> int:
    level = log_level or os.environ.get("FASTREPO_LOG_LEVEL") or logging.INFO
    if isinstance(level, str):
        return logging.getLevelName(level.upper())
    return level


def get_logger(name: str, log_level: Optional[Union[int, str]] = None) -> logging.Logger:
    """uvicorn 포맷터가 설정된 로거를 리턴합니다. 핸들러는 한번만 추가됩니다."""
    repo_logger = logging.getLogger(name)
    if not repo_logger.handlers:
        repo_logger.setLevel(_resolve_level(log_level))
        handler = logging.StreamHandler()
        handler.setFormatter(DefaultFormatter(fmt=LOG_FORMAT))
        repo_logger.addHandler(handler)

    return repo_logger
