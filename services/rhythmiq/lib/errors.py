# services/rhythmiq/lib/errors.py
"""
Failure classes raised by the gateway, the ensemble and the chat relay.
Each carries the HTTP status the endpoint boundary should answer with.
"""


class RhythmIQError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(RhythmIQError):
    """Gateway credential (or other required setting) is missing."""


class GatewayError(RhythmIQError):
    """Upstream AI gateway answered non-2xx or could not be reached."""

    def __init__(self, message: str, upstream_status: int = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class RateLimitError(GatewayError):
    status_code = 429


class CreditsExhaustedError(GatewayError):
    status_code = 402


class OpinionParseError(RhythmIQError):
    """A persona's reply held no JSON in the expected shape."""

    def __init__(self, persona: str, content: str = ""):
        super().__init__(f"{persona} parsing failed")
        self.persona = persona
        self.content = content
