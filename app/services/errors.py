"""
Service-level exceptions.

Each wraps the underlying cause in its message and is raised with
`raise ... from exc`. main.py renders them with the standard error envelope
using the class's status_code and code.
"""


class ServiceError(Exception):
    """Base class for failures of a service operation."""

    status_code = 500
    code = "SERVICE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OAuthServiceError(ServiceError):
    """An OAuth operation (URL, exchange, refresh, revoke, verify) failed."""

    status_code = 502
    code = "OAUTH_ERROR"


class CredentialError(ServiceError):
    """Stored credentials are missing, malformed, or unusable."""

    status_code = 400
    code = "CREDENTIAL_ERROR"


class DiscoveryError(ServiceError):
    """Spreadsheet or workspace-user discovery failed."""

    status_code = 502
    code = "DISCOVERY_FAILED"


class RiskScoringError(ServiceError):
    """The risk-scoring pass failed."""

    status_code = 500
    code = "RISK_SCORING_FAILED"


class SenderServiceError(ServiceError):
    """Fetching or cleaning up Gmail senders failed."""

    status_code = 502
    code = "GMAIL_ERROR"
