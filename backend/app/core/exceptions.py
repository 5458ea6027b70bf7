"""
Exception types for the change-management engine, plus safe HTTP error helpers.

SECURITY PRINCIPLE: Don't expose internal details to operators.
Use generic error messages externally, detailed logging internally.

Only ConfigurationError and ModelProviderError are allowed to escape a run;
everything else is converted into a structured per-call or per-item result.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Missing credentials or a broken static configuration (tool registry, dispatch table)."""


class ModelProviderError(Exception):
    """The language model call itself failed (network, auth, rate limit). Aborts the run.

    The agent loop re-raises it with the usage and iteration count gathered
    before the failure, so the run can still be accounted for.
    """

    def __init__(self, message: str, usage=None, iterations: int = 0):
        self.usage = usage
        self.iterations = iterations
        super().__init__(message)


class ToolInputError(Exception):
    """Tool-call arguments did not validate against the tool's input schema."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(f"Invalid input for {tool_name}: {message}")


class RemoteSystemError(Exception):
    """The WordPress site rejected or failed a call."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class InvalidTransitionError(Exception):
    """An action queue entry was asked to move to a status it cannot reach."""

    def __init__(self, action_id: str, current: str, target: str):
        self.action_id = action_id
        self.current = current
        self.target = target
        super().__init__(f"Action {action_id}: cannot transition {current} -> {target}")


class BusinessError:
    """HTTP exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        Generic 404 that doesn't confirm resource existence.

        SECURITY: Same response whether the website doesn't exist or has no
        usable WordPress connection. Prevents enumeration of tenant ids.
        """
        if reason:
            logger.warning(f"Access denied / not found: {resource} - {reason}")

        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Resource not found",
        )

    @staticmethod
    def unauthorized(reason: str = "") -> HTTPException:
        """Generic 401 for all authentication failures."""
        logger.warning(f"Unauthorized access attempt: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
        )

    @staticmethod
    def forbidden(reason: str = "") -> HTTPException:
        """Generic 403 for role issues."""
        logger.warning(f"Forbidden access: {reason}")
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation errors.

        OK to include specific details here since the caller caused the issue.
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def not_configured(detail: str) -> HTTPException:
        """503 when a required credential (e.g. the model API key) is missing."""
        logger.error(f"Service not configured: {detail}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
        )

    @staticmethod
    def upstream_failed(original_error: Exception = None) -> HTTPException:
        """
        502 for language model provider failures.

        SECURITY: Provider error bodies can echo request data; keep them in logs.
        """
        if original_error:
            logger.error(
                f"Model provider error: {type(original_error).__name__}: {original_error}"
            )
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="The AI provider is unavailable. Please try again later.",
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """
        Generic 500 - logs actual error internally, hides from operator.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=True
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )
