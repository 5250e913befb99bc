class SejourError(Exception):
    """Base error raised by the query layer"""

    default_message = "Error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(SejourError):
    """Caller-correctable input problem"""

    default_message = "Bad Request"


class UnauthorizedError(SejourError):
    default_message = "Unauthorized"


class NotFoundError(SejourError):
    """Referenced entity does not exist"""

    default_message = "Not Found"
