"""Exceptions raised and reported by SQSBuffer."""


class SQSBufferException(Exception):
    """Base class of every SQSBuffer error."""

    def __init__(self, message: str = "", cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ConfigurationError(SQSBufferException):
    """A required option is missing or has an invalid value."""


class AuthenticationError(SQSBufferException):
    """The queue service rejected our credentials."""


class ReceiveError(SQSBufferException):
    """The queue service failed while receiving messages."""


class AckError(SQSBufferException):
    """A delete call failed, the message stays on the queue."""


class ProcessingError(SQSBufferException):
    """The application could not process the messages."""


class InvalidMessage(SQSBufferException):
    pass


class SQSBufferCLIException(SQSBufferException):
    pass
