import json
import logging
import os
from logging.handlers import RotatingFileHandler

# Logs live beside the data unless LOG_DIR says otherwise
LOG_DIR = os.environ.get('LOG_DIR', 'logs')
if not os.path.exists(LOG_DIR):
    try:
        os.makedirs(LOG_DIR)
    except OSError:
        LOG_DIR = '.'

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class JsonFormatter(logging.Formatter):
    """Single-line JSON records for log shippers."""

    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "filename": record.filename,
            "lineno": record.lineno,
        }
        username = getattr(record, 'username', None)
        if username:
            payload["username"] = username
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _build_formatter():
    if os.environ.get('LOG_FORMAT', 'text').lower() == 'json':
        return JsonFormatter()
    return logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def _rotating_handler(filename, level, max_bytes, backups, formatter):
    """Rotating file handler, or None when the log directory is unwritable."""
    try:
        handler = RotatingFileHandler(
            os.path.join(LOG_DIR, filename),
            maxBytes=max_bytes,
            backupCount=backups,
            encoding='utf-8',
        )
    except OSError:
        return None
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


formatter = _build_formatter()

console_handler = logging.StreamHandler()
console_handler.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
console_handler.setFormatter(formatter)

# Full log 5MB x 5, errors 2MB x 3
file_handler = _rotating_handler('turf_fertility.log', logging.DEBUG, 5 * 1024 * 1024, 5, formatter)
error_handler = _rotating_handler('errors.log', logging.ERROR, 2 * 1024 * 1024, 3, formatter)

root_logger = logging.getLogger()
root_logger.setLevel(logging.DEBUG)
for handler in (console_handler, file_handler, error_handler):
    if handler:
        root_logger.addHandler(handler)

logger = logging.getLogger('turf_fertility')
logger.setLevel(logging.DEBUG)

# Reduce noise from third-party libraries
for noisy in ('urllib3', 'httpx', 'openai', 'werkzeug'):
    logging.getLogger(noisy).setLevel(logging.WARNING)

logger.info("Turf Fertility Manager logging initialized")
