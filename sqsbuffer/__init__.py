"""An SQS consumer that processes and acknowledges messages in large buffered batches"""

from sqsbuffer.__about__ import __version__
from sqsbuffer.acknowledgment import Acknowledger
from sqsbuffer.buffers import Buffer, MemoryBuffer
from sqsbuffer.clients import QueueClient, SQSClient
from sqsbuffer.datastructures import Message
from sqsbuffer.events import EventEmitter
from sqsbuffer.exceptions import (
    AckError,
    AuthenticationError,
    ConfigurationError,
    InvalidMessage,
    ProcessingError,
    ReceiveError,
    SQSBufferException,
)
from sqsbuffer.receiver import Receiver
from sqsbuffer.sender import Sender

__all__ = [
    "__version__",
    "Receiver",
    "Sender",
    "Acknowledger",
    "Buffer",
    "MemoryBuffer",
    "QueueClient",
    "SQSClient",
    "EventEmitter",
    "Message",
    "SQSBufferException",
    "ConfigurationError",
    "AuthenticationError",
    "ReceiveError",
    "ProcessingError",
    "AckError",
    "InvalidMessage",
]
