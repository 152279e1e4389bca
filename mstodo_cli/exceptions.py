"""
Excepciones del cliente de Microsoft To Do.

Todas heredan de TodoCliError para que la CLI pueda mostrarlas con un único
mensaje explicativo.
"""

from typing import Optional


class TodoCliError(Exception):
    """Error base de mstodo-cli."""


class ConfigError(TodoCliError):
    """Configuración ausente o inválida (por ejemplo, falta CLIENT_ID)."""


class AuthInteractionRequired(TodoCliError):
    """El token no se puede obtener en silencio; hace falta que el usuario inicie sesión."""


class AuthError(TodoCliError):
    """Error de configuración o de red durante la obtención del token."""

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.error = error


class StorageError(TodoCliError):
    """Fallo de lectura o escritura del archivo de caché de tokens."""


class EntityNotFound(TodoCliError):
    """No se encontró la lista o la tarea indicada."""


class ValidationError(TodoCliError):
    """Argumento o flag inválido, detectado antes de cualquier llamada remota."""


class RemoteOperationError(TodoCliError):
    """La llamada a Microsoft Graph falló."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
