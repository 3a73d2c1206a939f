import json
import logging
import logging.handlers
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


class LogFormat(Enum):
    SIMPLE = 'simple'
    DETAILED = 'detailed'
    JSON = 'json'


class StructuredFormatter(logging.Formatter):
    EXTRA_KEYS = ('model_name', 'test_type', 'question_id')

    def __init__(self, format_type: LogFormat = LogFormat.SIMPLE):
        self.format_type = format_type
        if format_type == LogFormat.SIMPLE:
            fmt = '%(asctime)s - %(name)-20s - %(levelname)-8s - %(message)s'
        elif format_type == LogFormat.DETAILED:
            fmt = '%(asctime)s - %(name)s - %(levelname)s [%(funcName)s:%(lineno)d] %(message)s'
        else:
            fmt = None
        super().__init__(fmt, datefmt='%Y-%m-%d %H:%M:%S')

    def format(self, record):
        if self.format_type == LogFormat.JSON:
            entry = {
                'timestamp': datetime.fromtimestamp(record.created).isoformat(),
                'level': record.levelname,
                'logger': record.name,
                'message': record.getMessage(),
            }
            for key in self.EXTRA_KEYS:
                if hasattr(record, key):
                    entry[key] = getattr(record, key)
            return json.dumps(entry, ensure_ascii=False)
        return super().format(record)


def setup_logging(config: Optional[Dict[str, Any]] = None):
    """Configure the root logger from the ``logging:`` section of the CLI config.

    Call once at startup. Console output always uses the simple format; the
    rotating file under ``directory`` uses ``format`` (simple/detailed/json).
    Set ``directory`` to null to log to the console only.
    """
    log_config = (config or {}).get('logging') or {}

    level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    file_format = LogFormat[str(log_config.get('format', 'DETAILED')).upper()]
    directory = log_config.get('directory', 'logs')

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(StructuredFormatter(LogFormat.SIMPLE))
    root.addHandler(console)

    if directory:
        log_dir = Path(directory)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / 'benchmark.log',
            maxBytes=int(log_config.get('file_max_mb', 10)) * 1024 * 1024,
            backupCount=int(log_config.get('file_backup_count', 5)),
            encoding='utf-8',
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(StructuredFormatter(file_format))
        root.addHandler(file_handler)

    logging.getLogger(__name__).debug("logging configured (level=%s)", logging.getLevelName(level))
