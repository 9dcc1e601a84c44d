"""Helper functions for testing logging."""

from __future__ import annotations

import json
from typing import Any

from _pytest.logging import LogCaptureFixture

__all__ = ["parse_log"]


def parse_log(caplog: LogCaptureFixture) -> list[dict[str, Any]]:
    """Parse the accumulated logs as JSON.

    Checks and strips off common log attributes and returns the rest as a list
    of dictionaries holding the parsed JSON of the log message.

    Parameters
    ----------
    caplog
        The log capture fixture.

    Returns
    -------
    list of dict
        List of parsed JSON dictionaries with the common log attributes
        removed (after validation).
    """
    messages = []
    for log_tuple in caplog.record_tuples:
        message = json.loads(log_tuple[2])
        assert message["logger"] == "cshldap"
        del message["logger"]
        message.pop("timestamp", None)

        # The name of the level key depends on the safir version.
        level = message.pop("severity", None) or message.pop("level", None)
        assert level
        message["level"] = level
        messages.append(message)
    return messages
