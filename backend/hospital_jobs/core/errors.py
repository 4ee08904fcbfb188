class PipelineError(Exception):
    """Base class for errors raised by the discovery/scrape pipeline."""


class ConfigError(PipelineError):
    pass


class FetchError(PipelineError):
    """Network failure or timeout while fetching one URL."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class EndpointMiss(PipelineError):
    """A structured platform endpoint answered with something we cannot use.

    Raised for non-2xx responses and non-JSON bodies; callers treat it as
    "the platform guess was wrong" and fall back to HTML scraping.
    """


class AuthError(PipelineError):
    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BadRequest(PipelineError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
