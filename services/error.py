from contextlib import contextmanager
import sys
import traceback
import services.logger as log

# Initialize logger
l = log.get_logger()


class ForwardEncodeError(Exception):
    """Base class for every error raised while building a forward bundle."""


class EmptyFileError(ForwardEncodeError):
    """A media file resolved for an image segment is zero bytes long."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"文件异常，大小为 0: {path}")


class ForwardCardError(ForwardEncodeError):
    """A forward card payload could not be decoded."""


class BackendError(ForwardEncodeError):
    """A backend collaborator failed or returned something unusable."""


def _handle_uncaught_exceptions(exc_type, exc_value, exc_traceback):
    """Global exception handler for uncaught exceptions."""
    if issubclass(exc_type, KeyboardInterrupt):
        # Call default handler for keyboard interrupt (e.g. Ctrl+C)
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    # Log the full traceback for debugging
    l.critical(
        "Unhandled exception caught:\n"
        + ''.join(traceback.format_exception(exc_type, exc_value, exc_traceback))
    )

# Install global exception hook
sys.excepthook = _handle_uncaught_exceptions

def raise_and_log(message: str, exception_type: type = ForwardEncodeError):
    """
    Log an error and then raise the specified exception.

    :param message: Error message to log and include in the exception.
    :param exception_type: Type of exception to raise (default: ForwardEncodeError).
    """
    l.error(f"Raising exception: {message}")
    raise exception_type(message)

@contextmanager
def catch_and_log(context_info: str = ""):
    """
    Context manager that logs an exception with some context, then re-raises it.

    :param context_info: Optional context info to include in the log.
    """
    try:
        yield
    except Exception as e:
        l.error(f"Exception caught in context '{context_info}': {e}")
        raise
