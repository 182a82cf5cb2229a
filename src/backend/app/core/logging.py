# app/core/logging.py
import logging
from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def setup_logging(level: str | None = None) -> None:
    """
    ルートロガーを一度だけ設定する．各モジュールは logging.getLogger(__name__) を使う．
    """
    level = (level or get_settings().LOG_LEVEL).upper()
    root = logging.getLogger()
    if getattr(root, '_parkour_configured', False):
        root.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    root._parkour_configured = True

    # boto3・httpxのデバッグログは量が多いため抑制
    for noisy in ('botocore', 'boto3', 'urllib3', 'httpx', 'httpcore'):
        logging.getLogger(noisy).setLevel(logging.WARNING)
