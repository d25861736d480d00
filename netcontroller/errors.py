"""
Network Controller Errors
"""


class NetworkControllerError(Exception):
    """Base error for the network controller"""
    pass


class TestInitializationError(NetworkControllerError):
    """Raised when the network cannot be confirmed online before a test starts"""

    # Keep pytest from collecting this as a test class
    __test__ = False

    def __init__(self, message: str = "Failed to ensure network starts with default values"):
        super().__init__(message)


class UnsupportedConfigurationError(NetworkControllerError):
    """Raised when the configured variant has no controller"""
    pass


class ConfigurationError(NetworkControllerError):
    """Raised when settings are missing or invalid"""
    pass


class CommandExecutionError(NetworkControllerError):
    """Raised when a network tool (iptables, tc) cannot be executed"""

    def __init__(self, command: str, reason: str):
        super().__init__(f"Could not execute '{command}': {reason}")
        self.command = command
        self.reason = reason
