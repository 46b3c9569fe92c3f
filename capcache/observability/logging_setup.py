from __future__ import annotations
import logging
from loguru import logger

# 업스트림 HTTP, 저장소, 서버 라이브러리 로그를 같은 sink로 모음
INTERCEPTED_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "aiohttp", "asyncio", "aiosqlite")

class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())

def _hook_stdlib_logging() -> None:
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED_LOGGERS:
        l = logging.getLogger(name)
        l.handlers = [InterceptHandler()]
        l.propagate = False

# 서비스명과 모듈명을 앞에 두고, area 등 바인딩된 컨텍스트는 extra로만 유지
CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level:<7}</level> | "
    "{extra[service]} | "
    "<cyan>{extra[name]}</cyan> | "
    "<cyan>{file}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

def setup_logging(log_level: str = "INFO", service: str = "AEMET-CAP-Cache") -> None:
    """
    콘솔 loguru 초기화.
    - 서비스명이 붙은 컬러 출력
    - stdlib logging 흡수
    """
    logger.remove()
    logger.configure(extra={"name": "capcache", "service": service})
    logger.add(
        sink=lambda m: print(m, end=""),
        format=CONSOLE_FORMAT,
        colorize=True,
        backtrace=False,
        diagnose=False,
        level=log_level.upper(),
        enqueue=False,
    )
    _hook_stdlib_logging()

def get_logger(name: str = "capcache", **ctx):
    """모듈 이름과 선택적 컨텍스트(area, zone 등)를 바인딩한 logger 반환."""
    return logger.bind(name=name, **ctx)
