"""Error hierarchy for poll-cycle failure classification.

The monitor decides what a failure means from its type alone:
transient failures (the next tick may succeed) leave scheduling running,
permanent failures move the monitor into its stopped state.

Example usage in a tick:
    try:
        events = session.fetch_events(today)
    except SessionExpired:
        state.needs_login = True
    except TransientError:
        return  # next tick retries
    except Exception:
        monitor.stop()
"""


class MonitorError(Exception):
    """Base exception for all schedule monitor errors."""

    pass


class TransientError(MonitorError):
    """Temporary failure that may succeed on the next tick.

    Examples: request timeout, a half-written script served mid-deploy.
    """

    pass


class SessionExpired(TransientError):
    """Authenticated fetch landed on the unauthenticated login page.

    Recoverable: the login task re-authenticates and polling resumes.
    """

    pass


class ExtractionError(TransientError):
    """Expected embedded resource URL or data blob anchor not found.

    Logged and treated as "no events" by the extractor; never a crash.
    """

    pass


class DecodeError(TransientError):
    """Structured data blob could not be decoded into events.

    Fails the whole poll cycle for that tick; no partial results.
    """

    pass


class PermanentError(MonitorError):
    """Failure that won't succeed by waiting for the next tick."""

    pass


class AuthError(PermanentError):
    """Invalid credentials or an unexpected login response shape."""

    pass


class FetchError(PermanentError):
    """Portal answered with an unexpected status or the transport failed."""

    pass


class TitleParseError(MonitorError):
    """A single event title did not match the portal's title layout.

    Never escapes the extractor: the record is kept with blank fields.
    """

    pass


class DeliveryError(MonitorError):
    """Notification sink failed to deliver a report. Logged, not retried."""

    pass
