"""
로깅 설정 유틸리티

Worker와 Web 공통 로깅 설정.
- 콘솔 + 일 단위 롤링 파일 (TimedRotatingFileHandler)
- logger.info(..., extra={"client_id": 1}) 의 extra 값은 메시지 뒤에 key=value로 출력

사용법:
    from core.logging import setup_logging
    setup_logging("worker")
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths
from core.types import ProcessName

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 7

# WARNING 이상만 남길 라이브러리 로거
NOISY_LOGGERS = [
    "aiosqlite",       # 쿼리마다 executing/completed 로그
    "httpcore",
    "httpx",
    "asyncio",
    "uvicorn.access",  # auto-sync 상태 폴링 요청마다 기록됨
]

# LogRecord 기본 속성 (extra 판별용)
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class ContextFormatter(logging.Formatter):
    """extra로 전달된 문맥 값을 메시지 뒤에 붙이는 포맷터

    예: ``... | core.ledger.store | 현금 이동 기록: #3 | client_id=1 type=venta``
    """

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if not context:
            return line

        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        # traceback이 붙은 경우 첫 줄 뒤에 문맥 삽입
        head, sep, tail = line.partition("\n")
        return f"{head} | {pairs}{sep}{tail}"


def get_log_dir(process_name: str) -> Path:
    """프로세스별 로그 디렉토리"""
    if process_name == ProcessName.WORKER.value:
        return Paths.WORKER_LOGS_DIR
    if process_name == ProcessName.WEB.value:
        return Paths.WEB_LOGS_DIR
    return Paths.LOGS_DIR


def get_log_file_path(process_name: str) -> Path:
    return get_log_dir(process_name) / f"{process_name}.log"


def setup_logging(
    process_name: str,
    console_level: int = logging.INFO,
    file_level: int = logging.INFO,
) -> logging.Logger:
    """루트 로거 초기화

    기존 핸들러는 제거 후 다시 등록 (여러 번 호출해도 중복 출력 없음).

    Args:
        process_name: "worker" 또는 "web"
        console_level: 콘솔 로그 레벨
        file_level: 파일 로그 레벨

    Returns:
        설정된 루트 Logger
    """
    log_file = get_log_file_path(process_name)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    formatter = ContextFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.suffix = "%Y-%m-%d"  # worker.log.2024-05-10
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(
        f"로깅 초기화 완료: {process_name}",
        extra={"log_file": str(log_file), "retention_days": LOG_FILE_BACKUP_COUNT},
    )
    return root_logger
