__all__ = ["NotAuthorizedException", "AccessDenied", "RecordNotFound", "NumberOfRetriesExceeded",
           "ValidationException", "ItemNotAvailable", "OrderNotFound", "StoreFailure", "OrderCreationFailed",
           "CalendarConfigurationError", "EmptyCart"]


class NotAuthorizedException(Exception):
    LEVEL = 'warning'


# Generic Exceptions
class AccessDenied(Exception):
    LEVEL = 'warning'


# DynamoDB exceptions
class StoreFailure(Exception):
    pass


class RecordNotFound(StoreFailure):
    LEVEL = 'info'


class OrderCreationFailed(StoreFailure):
    pass


# DB Performance Exception
class NumberOfRetriesExceeded(StoreFailure):
    pass


# Validations exceptions
class ValidationException(Exception):
    LEVEL = 'warning'


class ItemNotAvailable(ValidationException):
    pass


class EmptyCart(ValidationException):
    pass


class OrderNotFound(Exception):
    LEVEL = 'info'


# Startup exceptions
class CalendarConfigurationError(Exception):
    pass
