class GatewayError(Exception):
    """Base class for errors raised while talking to Daraja.

    ``public_message`` is what an HTTP caller may see. The exception's own
    message can carry more detail and is only ever logged.
    """

    public_message = "Failed to process request"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)


class ConfigurationError(GatewayError):
    public_message = "Server configuration error. Please check environment variables."

    def __init__(self, message: str | None = None, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class ValidationError(GatewayError):
    public_message = "Invalid URL format. URLs must use HTTPS protocol."


class AuthenticationError(GatewayError):
    public_message = "Failed to get access token from M-Pesa API"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamProtocolError(GatewayError):
    public_message = "Unexpected response from M-Pesa API"


class UpstreamHttpError(GatewayError):
    public_message = "Failed to register URLs with M-Pesa"

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
