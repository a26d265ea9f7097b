"""패키지 공통 로거."""
import logging

from uvicorn.logging import DefaultFormatter

LOG_FORMAT = "%(levelprefix)s %(name)s: %(message)s"


def get_logger(name: str, log_level=logging.INFO) -> logging.Logger:
    """uvicorn 과 같은 형식으로 출력하는 로거를 리턴합니다.

    같은 이름으로 여러 번 호출해도 핸들러는 한 번만 추가됩니다.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(log_level)
        handler = logging.StreamHandler()
        handler.setFormatter(DefaultFormatter(fmt=LOG_FORMAT))
        logger.addHandler(handler)

    return logger
