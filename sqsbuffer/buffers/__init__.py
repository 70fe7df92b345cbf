from sqsbuffer.buffers.base import Buffer
from sqsbuffer.buffers.memory import MemoryBuffer

__all__ = ["Buffer", "MemoryBuffer"]
