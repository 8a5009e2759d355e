from typing import BinaryIO, Tuple


class TeeWriter:
    """
    Writes every chunk it receives to each of its destinations, in order.

    Destinations are flushed after each write so live output stays in step
    with the captured transcript. The first destination that raises aborts
    the write.
    """

    def __init__(self, *destinations: BinaryIO) -> None:
        self.destinations: Tuple[BinaryIO, ...] = destinations

    def write(self, data: bytes) -> int:
        for destination in self.destinations:
            destination.write(data)
            flush = getattr(destination, "flush", None)
            if flush is not None:
                flush()
        return len(data)

    def flush(self) -> None:
        for destination in self.destinations:
            flush = getattr(destination, "flush", None)
            if flush is not None:
                flush()
