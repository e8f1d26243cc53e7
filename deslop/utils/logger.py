# deslop/utils/logger.py
import logging
import sys

from deslop.config import settings

def get_logger(name: str = "deslop") -> logging.Logger:
    """stdout 핸들러 하나만 붙인 로거. 중복 등록 방지."""
    log = logging.getLogger(name)
    log.setLevel(settings.log_level.upper())
    if log.handlers:
        return log
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    log.addHandler(handler)
    log.propagate = False
    return log

logger = get_logger()
