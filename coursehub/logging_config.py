# logging_config.py
import logging
import logging.config
from pathlib import Path

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = {
    'pymongo': 'WARNING',
    'passlib': 'ERROR',
    'multipart': 'WARNING',
}

def setup_logging(log_level: str = "INFO", log_file: str = None):
    """
    Configure logging for the API, the CLI and the uvicorn server.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a rotating log file
    """

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    handlers = ['console']
    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            }
        },
        'handlers': {
            'console': {
                'level': log_level,
                'class': 'logging.StreamHandler',
                'formatter': 'standard',
                'stream': 'ext://sys.stdout'
            }
        },
        'loggers': {
            '': {  # root logger
                'handlers': handlers,
                'level': log_level,
                'propagate': False
            },
        }
    }

    for name in ('uvicorn', 'uvicorn.error', 'uvicorn.access'):
        config['loggers'][name] = {'handlers': handlers, 'level': 'INFO', 'propagate': False}

    for name, level in QUIET_LOGGERS.items():
        config['loggers'][name] = {'level': level}

    if log_file:
        config['handlers']['file'] = {
            'level': log_level,
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'detailed',
            'filename': log_file,
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5
        }
        handlers.append('file')

    logging.config.dictConfig(config)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured with level: {log_level}")
    if log_file:
        logger.info(f"Log file: {log_file}")
