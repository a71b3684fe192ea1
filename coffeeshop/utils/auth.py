import functools
import uuid
from typing import Dict, Tuple

from starlette.requests import Request

from coffeeshop.constants import keys_structure
from coffeeshop.constants.constants import ROLE_ADMIN
from coffeeshop.utils import exceptions as utils_exceptions, db as utils_db
from coffeeshop.utils.logger import log_request, logger


def start_request_logging(request: Request):
    logger.current_request_id = request.headers.get('x-request-id') or str(uuid.uuid4()).split('-')[4]
    log_request(request)


def get_user_role(user_id) -> str:
    try:
        user_item = utils_db.get_db_item(
            partkey=keys_structure.users_pk,
            sortkey=keys_structure.users_sk.format(user_id=user_id)
        )
    except utils_exceptions.RecordNotFound as error:
        raise utils_exceptions.NotAuthorizedException(f'Unknown user {user_id}') from error
    return user_item.get('role')


def get_auth_result(request: Request) -> Dict:
    # Todo: replace the raw user id header with a verified session token from the auth provider
    user_id = request.headers.get('authorization')
    if not user_id:
        raise utils_exceptions.NotAuthorizedException('Error occurred in authorization process')
    return {'user_id': user_id, 'role': get_user_role(user_id)}


def authenticate(func):
    """
    Wrapper for functions which require user's authentication,
    the request must be the first argument
    """

    @functools.wraps(func)
    def result_auth(request: Request, *args, **kwargs):
        start_request_logging(request)
        request.state.auth_result = get_auth_result(request)
        result = func(request, *args, **kwargs)
        logger.info(f'authenticate ::: SUCCESS, func.__name__ {func.__name__}')
        return result

    return result_auth


def authenticate_class(func):
    """
    Wrapper for class methods which require user's authentication
    """

    @functools.wraps(func)
    def result_auth(cls, request: Request, *args, **kwargs):
        start_request_logging(request)
        request.state.auth_result = get_auth_result(request)
        return func(cls, request, *args, **kwargs)

    return result_auth


def require_admin(auth_result: Dict, action: str = 'change order fulfillment status'):
    if auth_result.get('role') != ROLE_ADMIN:
        raise utils_exceptions.AccessDenied(f'Only shop admins can {action}')


def user_and_role(request: Request) -> Tuple[str, str]:
    auth_result = request.state.auth_result
    return auth_result['user_id'], auth_result['role']
