"""Request handlers and the response envelope."""

from contave.api.responses import ApiResponse

__all__ = ["ApiResponse"]
