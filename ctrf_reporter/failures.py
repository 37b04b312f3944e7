"""Formatting of test failure causes into report text."""

import traceback
from dataclasses import dataclass

type FailureCause = BaseException | str

TRUNCATION_SUFFIX = "..."


@dataclass(frozen=True, kw_only=True)
class FailureDescription:
    """Message and trace of a failure, ready to be written to a report."""

    message: str
    trace: str


def format_trace(cause: FailureCause) -> str:
    """Render a failure cause as a full trace.

    Adapters that already hold a rendered failure (pytest's ``longreprtext``,
    unittest's formatted ``exc_info``) pass it as a string and it is used
    verbatim.
    """
    if isinstance(cause, str):
        return cause
    return "".join(traceback.format_exception(cause))


def format_failure(cause: FailureCause, max_message_length: int) -> FailureDescription:
    """Build the failure description for a cause.

    The trace is kept whole. The message is the trace cut to
    ``max_message_length`` characters with ``...`` appended when it was cut.
    """
    trace = format_trace(cause)
    if len(trace) > max_message_length:
        message = trace[:max_message_length] + TRUNCATION_SUFFIX
    else:
        message = trace
    return FailureDescription(message=message, trace=trace)
