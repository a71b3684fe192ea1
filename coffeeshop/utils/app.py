import functools
from typing import Callable, Union

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from coffeeshop.constants.status_codes import http200, http400, http401, http403, http404, http500
from coffeeshop.utils.exceptions import AccessDenied, NotAuthorizedException, OrderNotFound, RecordNotFound, \
    ValidationException, StoreFailure
from coffeeshop.utils.logger import logger, log_exception
from coffeeshop.utils.results import Rejected, ParseFailure


def json_response(body, status_code: int = http200) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder(body), status_code=status_code)


def error_response(error: Exception, msg: str = "", status_code: int = 400, *args, **kwargs):
    log_exception(error=error, msg=msg, status_code=status_code, *args, **kwargs)
    return json_response(
        body={
            'error': str(error),
            'exception': error.__class__.__name__,
            "message": str(msg),
            'error_id': getattr(logger, 'current_request_id'),
            'level': getattr(error, 'LEVEL', 'exception')
        },
        status_code=status_code
    )


def rejected_response(result: Union[Rejected, ParseFailure], status_code: int = http400):
    """Expected business failures are answered without going through exception logging"""
    logger.info(f'rejected_response ::: {result}')
    return json_response(
        body={
            'error': result.reason,
            'exception': result.__class__.__name__,
            'error_id': getattr(logger, 'current_request_id')
        },
        status_code=status_code
    )


def request_exception_handler(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        try:
            logger.info(f'Calling function {func.__name__}')
            return func(*args, **kwargs)
        except ValidationException as validation_error:
            return error_response(
                error=validation_error,
                msg=f'function = {func.__name__} , error = {validation_error}',
                status_code=http400)
        except (OrderNotFound, RecordNotFound) as not_found:
            return error_response(
                error=not_found,
                msg=f'function = {func.__name__} , error = {not_found}',
                status_code=http404)
        except NotAuthorizedException as not_authorized:
            return error_response(
                error=not_authorized,
                msg='Authorization is required',
                status_code=http401)
        except AccessDenied as access_denied:
            return error_response(
                error=access_denied,
                msg="You don't have permissions to access this resource",
                status_code=http403)
        except StoreFailure as store_failure:
            return error_response(
                error=store_failure,
                msg=f'function = {func.__name__}, store error = {store_failure}',
                status_code=http500)
        except Exception as exception:
            return error_response(
                error=exception,
                msg=f'function = {func.__name__}, error = {exception}',
                status_code=http500)
    return result


def log_start_finish(func: Callable):
    @functools.wraps(func)
    def result(*args, **kwargs):
        logger.info(f'{func.__name__} ::: started')
        response = func(*args, **kwargs)
        logger.info(f'{func.__name__} ::: finished')
        return response
    return result
