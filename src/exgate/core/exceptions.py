from typing import Optional
from exgate.core.models.problem import ProblemResponse


class ExtensionGatewayException(Exception):
    """Base exception carrying a problem response for the HTTP layer."""
    def __init__(self, response: ProblemResponse):
        self.response = response
        super().__init__(response.detail)


class UnknownExtensionError(LookupError):
    """Raised when no registered extension service lists the requested id.

    Attributes:
        extension_id: The id that could not be resolved
    """
    def __init__(self, extension_id: str):
        self.extension_id = extension_id
        super().__init__(f"No extension service registered for {extension_id}")


class ExtensionLifecycleError(Exception):
    """Raised by an extension service when install or uninstall fails.

    Attributes:
        extension_id: Extension the operation was attempted on
        operation: 'install' or 'uninstall'
        diagnostic: Technical detail for debugging
    """
    def __init__(
        self,
        message: str,
        extension_id: str,
        operation: str,
        diagnostic: Optional[str] = None,
    ):
        self.message = message
        self.extension_id = extension_id
        self.operation = operation
        self.diagnostic = diagnostic
        super().__init__(message)
