import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .exceptions import ConfigError

APP_NAME = 'mstodo-cli'
ENV_PREFIX = 'MSTODO_'
CONFIG_FILES = ('config.env', 'config.dev.env', 'config.ovr.env')

DEFAULT_TENANT_ID = 'common'
DEFAULT_SCOPES = ['User.Read', 'Tasks.ReadWrite']
AUTH_FLOWS = ('interactive', 'device_code')


def load_env_file(filename: str = 'config.env') -> Dict[str, str]:
    """
    Carga variables de entorno desde un archivo .env

    Args:
        filename: Nombre del archivo .env

    Returns:
        Diccionario con las variables de entorno
    """
    env_vars = {}

    if not os.path.exists(filename):
        return env_vars

    with open(filename, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            # Ignorar líneas vacías y comentarios
            if not line or line.startswith('#'):
                continue

            # Separar clave=valor
            if '=' in line:
                key, value = line.split('=', 1)
                env_vars[key.strip()] = value.strip()

    return env_vars


def get_app_dir(environ: Optional[Mapping[str, str]] = None) -> str:
    """
    Directorio de datos de la aplicación (caché de tokens y log de errores).

    Orden: $MSTODO_APP_DIR, %LOCALAPPDATA% en Windows, $XDG_DATA_HOME o
    ~/.local/share en el resto.
    """
    environ = os.environ if environ is None else environ

    override = environ.get(f'{ENV_PREFIX}APP_DIR')
    if override:
        return override

    if sys.platform == 'win32' and environ.get('LOCALAPPDATA'):
        return os.path.join(environ['LOCALAPPDATA'], APP_NAME)

    base = environ.get('XDG_DATA_HOME') or os.path.join(os.path.expanduser('~'), '.local', 'share')
    return os.path.join(base, APP_NAME)


@dataclass
class Settings:
    """Configuración de la aplicación registrada en Azure AD."""

    client_id: str
    app_dir: str
    tenant_id: str = DEFAULT_TENANT_ID
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    auth_flow: str = 'interactive'

    @property
    def authority(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant_id}"

    @classmethod
    def load(cls, config_dir: str = '.', environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Carga la configuración combinando archivos y variables de entorno.

        Los archivos se leen en orden y cada uno sobrescribe al anterior:
        <app_dir>/config.env, config.env, config.dev.env y config.ovr.env del
        directorio indicado. Las variables MSTODO_<CLAVE> tienen prioridad final.

        Args:
            config_dir: Directorio donde buscar los archivos de configuración
            environ: Variables de entorno (por defecto os.environ)

        Returns:
            Settings listo para usar

        Raises:
            ConfigError: Si falta CLIENT_ID o AUTH_FLOW no es válido
        """
        environ = os.environ if environ is None else environ
        app_dir = get_app_dir(environ)

        values: Dict[str, str] = {}
        values.update(load_env_file(os.path.join(app_dir, 'config.env')))
        for name in CONFIG_FILES:
            values.update(load_env_file(os.path.join(config_dir, name)))

        for key, value in environ.items():
            if key.startswith(ENV_PREFIX) and key != f'{ENV_PREFIX}APP_DIR':
                values[key[len(ENV_PREFIX):]] = value

        client_id = values.get('CLIENT_ID')
        if not client_id:
            raise ConfigError(
                "No se encontró CLIENT_ID en config.env ni en la variable MSTODO_CLIENT_ID"
            )

        auth_flow = values.get('AUTH_FLOW', 'interactive').lower()
        if auth_flow not in AUTH_FLOWS:
            raise ConfigError(
                f"AUTH_FLOW inválido: {auth_flow} (valores posibles: {', '.join(AUTH_FLOWS)})"
            )

        scopes = values.get('SCOPES', '').split() or list(DEFAULT_SCOPES)

        return cls(
            client_id=client_id,
            app_dir=app_dir,
            tenant_id=values.get('TENANT_ID') or DEFAULT_TENANT_ID,
            scopes=scopes,
            auth_flow=auth_flow,
        )
