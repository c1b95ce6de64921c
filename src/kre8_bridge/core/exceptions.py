"""
Exceptions personnalisées pour KRE8 Bridge.
"""


class Kre8BridgeError(Exception):
    """Exception de base pour toutes les erreurs du bridge."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code or "unknown_error"
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"[{self.code}] {self.message} - Détails: {self.details}"
        return f"[{self.code}] {self.message}"


class ConfigurationError(Kre8BridgeError):
    """Erreur de configuration (fichier invalide, valeur invalide)."""

    def __init__(self, message: str, config_key: str = None):
        super().__init__(
            message=message,
            code="config_error",
            details={"key": config_key} if config_key else {}
        )


class ExecutorError(Kre8BridgeError):
    """Erreur d'exécution d'une commande externe (process ou service HTTP)."""

    def __init__(self, message: str, exit_code: int = None, http_status: int = None):
        details = {}
        if exit_code is not None:
            details["exit_code"] = exit_code
        if http_status is not None:
            details["http_status"] = http_status
        super().__init__(
            message=message,
            code="executor_error",
            details=details
        )
        self.exit_code = exit_code
        self.http_status = http_status


class FileOperationError(Kre8BridgeError):
    """Erreur de lecture/écriture de fichier."""

    def __init__(self, message: str, path: str = None, operation: str = None):
        details = {}
        if path:
            details["path"] = path
        if operation:
            details["operation"] = operation
        super().__init__(
            message=message,
            code="file_error",
            details=details
        )
        self.path = path


class CommandParseError(Kre8BridgeError):
    """Paramètres de commande slash invalides (JSON malformé)."""

    def __init__(self, message: str, command: str = None):
        super().__init__(
            message=message,
            code="parse_error",
            details={"command": command} if command else {}
        )


class ChannelError(Kre8BridgeError):
    """Erreur de transport sur un canal WebSocket."""

    def __init__(self, message: str, session_id: str = None):
        super().__init__(
            message=message,
            code="channel_error",
            details={"session_id": session_id} if session_id else {}
        )
