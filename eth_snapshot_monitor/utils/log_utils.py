import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from time import time

from eth_snapshot_monitor.config.base_config import LoggingConfig

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
PROJECT_NAME = os.path.basename(PROJECT_ROOT)
LOG_LEVEL = getattr(logging, str(LoggingConfig.get('level', 'INFO')).upper(), logging.INFO)


def _resolve_log_path() -> str:
    log_file = LoggingConfig.get('file', f"{PROJECT_NAME}.log")
    if not log_file:
        return ''
    if not os.path.isabs(log_file):
        log_file = os.path.join(PROJECT_ROOT, log_file)
    return log_file


LOG_PATH = _resolve_log_path()


def extended_seconds_to_hms(seconds) -> str:
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)

    if days > 0:
        return f"{int(days):d}:{int(hours):02d}:{int(minutes):02d}:{int(seconds):02d}"
    else:
        return f"{int(hours):02d}:{int(minutes):02d}:{int(seconds):02d}"


def current_millis() -> int:
    """当前时间（毫秒）"""
    return int(time() * 1000)


def get_logger(logger_name: str, log_file: str = LOG_PATH) -> logging.Logger:
    logger = logging.getLogger(logger_name)

    # 检查logger是否已经有处理器，如果有，直接返回
    if logger.handlers:
        return logger

    FMT = logging.Formatter("%(asctime)s %(levelname)s %(filename)s:%(lineno)s %(message)s")
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(FMT)
    if log_file:
        os.makedirs(os.path.dirname(log_file), exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(FMT)
        logger.addHandler(file_handler)

    logger.addHandler(console_handler)
    logger.setLevel(LOG_LEVEL)

    # 防止日志传播到根日志器
    logger.propagate = False

    return logger
