"""Exception types raised by the conversion core."""


class WebPDropError(Exception):
    """Base class for all errors raised by webpdrop."""
    pass


class QueueBusyError(WebPDropError):
    """Raised when the queue is modified while a batch is running."""
    pass


class EncoderNotFoundError(WebPDropError):
    """Raised when the cwebp binary is missing or not executable."""
    pass


class EncoderTimeoutError(WebPDropError):
    """Raised when a cwebp invocation exceeds the configured timeout."""

    def __init__(self, input_path, timeout: float):
        super().__init__(f"cwebp timed out after {timeout:g}s for {input_path.name}.")
        self.input_path = input_path
        self.timeout = timeout
