from sqsbuffer.clients.base import MAX_BATCH_SIZE, QueueClient
from sqsbuffer.clients.sqs import SQSClient

__all__ = ["MAX_BATCH_SIZE", "QueueClient", "SQSClient"]
