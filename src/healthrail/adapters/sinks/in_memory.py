"""In-memory sink adapter."""


class InMemorySink:
    """In-memory implementation of LogSinkPort.

    Stores rendered records in a list. Suitable for testing and for
    callers that want to inspect output without touching the filesystem.
    """

    def __init__(self) -> None:
        self._records: list[str] = []

    def write(self, record: str) -> None:
        """Append a rendered record."""
        self._records.append(record)

    @property
    def records(self) -> list[str]:
        """Records written so far, oldest first."""
        return list(self._records)

    def text(self) -> str:
        """Everything written so far, concatenated."""
        return "".join(self._records)
