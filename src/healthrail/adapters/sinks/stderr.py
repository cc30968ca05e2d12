"""Standard error sink, the fallback when a log destination is unusable."""

import sys


class StderrSink:
    """LogSinkPort implementation writing to ``sys.stderr``.

    Looks ``sys.stderr`` up on every write so redirection (and test capture)
    is honoured.
    """

    def write(self, record: str) -> None:
        """Write a record to standard error, ignoring a broken stream."""
        stream = sys.stderr
        if stream is None:
            return
        try:
            stream.write(record)
            stream.flush()
        except (OSError, ValueError):
            # Nowhere left to report to.
            return
