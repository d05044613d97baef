"""Error type shared by the parser, the pagination loop and the transport."""


class ParasError(Exception):
    """Fatal error with a machine code and message."""

    def __init__(self, code: str, message: str, status_code: int = 0):
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(f"{code}: {message}")
