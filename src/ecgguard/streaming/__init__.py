# Streaming module
# Packet buffering and the producer/consumer session wrapper

from .buffer import SampleWindowBuffer

__all__ = [
    'SampleWindowBuffer',
]
