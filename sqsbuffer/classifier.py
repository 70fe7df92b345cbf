"""Turns raw queue failures into SQSBuffer errors."""

from botocore.exceptions import (
    ClientError,
    CredentialRetrievalError,
    NoCredentialsError,
    PartialCredentialsError,
)

from sqsbuffer.events import ERROR_EVENT, PROCESSING_ERROR_EVENT
from sqsbuffer.exceptions import (
    AckError,
    AuthenticationError,
    ProcessingError,
    ReceiveError,
    SQSBufferException,
)

CREDENTIALS_EXCEPTIONS = (
    NoCredentialsError,
    PartialCredentialsError,
    CredentialRetrievalError,
)

CREDENTIALS_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "InvalidClientTokenId",
        "UnrecognizedClientException",
        "SignatureDoesNotMatch",
        "ExpiredToken",
        "CredentialsError",
    }
)

FORBIDDEN_STATUS_CODE = 403


class ErrorClassifier:
    def is_authentication_failure(self, exception: BaseException) -> bool:
        if isinstance(exception, (AuthenticationError, *CREDENTIALS_EXCEPTIONS)):
            return True

        if isinstance(exception, ClientError):
            error = exception.response.get("Error", {})
            metadata = exception.response.get("ResponseMetadata", {})
            return (
                error.get("Code") in CREDENTIALS_ERROR_CODES
                or metadata.get("HTTPStatusCode") == FORBIDDEN_STATUS_CODE
            )

        code = getattr(exception, "code", None)
        return code == FORBIDDEN_STATUS_CODE or code == "CredentialsError"

    def classify_receive_error(self, exception: BaseException) -> AuthenticationError | ReceiveError:
        if self.is_authentication_failure(exception):
            return AuthenticationError("SQS authentication error", exception)

        return ReceiveError(f"SQS receive error: {exception}", exception)

    def classify_ack_error(self, exception: BaseException) -> AckError:
        if isinstance(exception, AckError):
            return exception

        return AckError(f"SQS delete message failed with error: {exception}", exception)

    def classify_processing_error(self, exception: BaseException) -> ProcessingError:
        if isinstance(exception, ProcessingError):
            return exception

        return ProcessingError(f"Message processing failed: {exception}", exception)

    def channel_for(self, error: SQSBufferException) -> str:
        """The notification an error is reported on."""
        match error:
            case ProcessingError():
                return PROCESSING_ERROR_EVENT
            case _:
                return ERROR_EVENT
