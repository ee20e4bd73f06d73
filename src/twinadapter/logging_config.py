
import logging
import os
from typing import Optional

def configure_logging(level: Optional[str] = None):
    level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='[%(asctime)s] [%(process)d:%(threadName)s] [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    # reuse the server's handlers when running under uvicorn/gunicorn
    for server_logger in ('uvicorn.error', 'gunicorn.error'):
        handlers = logging.getLogger(server_logger).handlers
        if handlers:
            root = logging.getLogger()
            for h in handlers:
                if h not in root.handlers:
                    root.addHandler(h)
            break
