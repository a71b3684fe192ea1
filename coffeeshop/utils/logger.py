import json
import os
from contextvars import ContextVar
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from logging import setLoggerClass, Logger, NOTSET, getLogger, StreamHandler, Formatter

from starlette.requests import Request

# sync routes run in a thread pool, every request keeps its own id
_request_id: ContextVar = ContextVar('request_id', default=None)


class CustomLogger(Logger):
    """
    Prefixes every record with the id of the request being served
    """

    def __init__(self, name, level=NOTSET):
        super(CustomLogger, self).__init__(name, level)

    @property
    def current_request_id(self):
        return _request_id.get()

    @current_request_id.setter
    def current_request_id(self, request_id):
        _request_id.set(request_id)

    def _log(self, level, msg, args, **kwargs):
        super(CustomLogger, self)._log(level, f'[{self.current_request_id}] : {msg}', args, **kwargs)


def conf_logger(level):
    setLoggerClass(CustomLogger)
    logger_ = getLogger('coffeeshop')
    console_handler = StreamHandler()
    console_handler.setLevel(level)
    formatter = Formatter('%(asctime)s - %(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    if logger_.hasHandlers():
        logger_.handlers.clear()
    logger_.addHandler(console_handler)
    logger_.setLevel(level)
    return logger_


logger = conf_logger(os.environ.get('LOG_LEVEL', 'DEBUG').upper())


def log_request(request: Request):
    headers = {key: value for key, value in request.headers.items() if key != 'authorization'}
    logger.info(f"Request: {json.dumps({'method': request.method, 'path': request.url.path, 'headers': headers})}")
    if request.query_params:
        logger.debug(f"Request query: {dict(request.query_params)}")


class CustomJSONEncoder(json.JSONEncoder):
    def default(self, value):
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, Enum):
            return value.value
        return super(CustomJSONEncoder, self).default(value)


def log_exception(error: Exception, status_code: int = 400, msg: str = "", *args, **kwargs):
    """
    Logs the error as one JSON line at the level the exception class declares (LEVEL),
    full traceback only for unexpected errors
    """
    level = getattr(error, 'LEVEL', 'exception')
    log_funcs = {
        'debug': logger.debug,
        'info': logger.info,
        'warning': logger.warning,
        'error': logger.error,
        'exception': logger.exception,
    }
    log_level = level if level in log_funcs else 'exception'
    log_funcs[log_level](json.dumps({
        'error': str(error),
        'exception': error.__class__.__name__,
        'message': str(msg),
        'level': log_level,
        'status_code': status_code,
        'request_id': logger.current_request_id,
        'args': args,
        'kwargs': kwargs
    }, cls=CustomJSONEncoder))
