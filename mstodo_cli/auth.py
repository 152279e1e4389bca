"""
Módulo de Autenticación con Microsoft Identity Platform
========================================================

Obtiene tokens de usuario para Microsoft Graph con MSAL, reutilizando la
caché persistida entre ejecuciones para no pedir login en cada comando.

Flujo de Autenticación:
-----------------------
1. Se carga la caché persistida (TokenCacheStore) en la caché de MSAL.
2. acquire_silent(): intenta obtener el token en silencio con la primera
   cuenta en caché. Devuelve Silent(resultado) o NeedsInteraction(motivo).
3. acquire_interactive(): solo si el paso anterior devolvió
   NeedsInteraction. Usa el navegador (o Device Code si AUTH_FLOW=device_code).
4. Si la caché cambió, se guarda en disco.

Cualquier otro error (configuración, red) se propaga como AuthError, sin
reintentos y sin pasar al modo interactivo.

Scopes Utilizados:
------------------
- User.Read: Leer perfil básico del usuario
- Tasks.ReadWrite: Leer y escribir tareas en Microsoft To Do

Referencias:
------------
- MSAL Python: https://learn.microsoft.com/en-us/entra/msal/python/
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

import msal
import requests

from .config import Settings
from .exceptions import AuthError, AuthInteractionRequired, StorageError
from .token_cache import TokenCacheStore

logger = logging.getLogger(__name__)

# Errores de MSAL que significan "el usuario tiene que volver a iniciar sesión"
INTERACTION_REQUIRED_ERRORS = frozenset({
    'invalid_grant',
    'interaction_required',
    'login_required',
    'consent_required',
})


@dataclass
class AuthResult:
    """Sesión autenticada: token bearer y usuario al que pertenece."""

    access_token: str
    username: str
    account_id: str
    expires_at: float

    @classmethod
    def from_msal(cls, result: Dict, account: Optional[Dict] = None) -> 'AuthResult':
        claims = result.get('id_token_claims') or {}
        account = account or {}
        username = (
            account.get('username')
            or claims.get('preferred_username')
            or claims.get('name', '')
        )
        account_id = (
            account.get('home_account_id')
            or claims.get('oid')
            or claims.get('sub', '')
        )
        return cls(
            access_token=result['access_token'],
            username=username,
            account_id=account_id,
            expires_at=time.time() + int(result.get('expires_in', 3600)),
        )


@dataclass
class Silent:
    """El token se obtuvo desde la caché sin intervención del usuario."""

    result: AuthResult


@dataclass
class NeedsInteraction:
    """Hace falta el login interactivo."""

    reason: str


SilentOutcome = Union[Silent, NeedsInteraction]


def _error_message(result: Dict) -> str:
    return f"{result.get('error')}: {result.get('error_description', '')}".strip()


class AuthSession:
    """
    Orquesta la obtención de tokens con MSAL y la persistencia de su caché.

    La caché en disco se lee una sola vez por sesión, antes del primer
    intento de obtención, y solo se escribe cuando MSAL indica que cambió.

    Args:
        settings: Configuración de la aplicación (client_id, authority, scopes)
        store: Almacenamiento del archivo de caché de tokens
        cache: Caché de MSAL (por defecto msal.SerializableTokenCache)
        app: Aplicación MSAL ya construida (por defecto se crea al primer uso)
        echo: Función para mostrar mensajes al usuario (Device Code Flow)
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[TokenCacheStore] = None,
        cache=None,
        app=None,
        echo: Callable[[str], None] = print,
    ):
        self.settings = settings
        self.store = store or TokenCacheStore(settings.app_dir)
        self.cache = cache if cache is not None else msal.SerializableTokenCache()
        self._app = app
        self._cache_loaded = False
        self.echo = echo

    @property
    def app(self):
        if self._app is None:
            logger.debug(f"Creando aplicación MSAL para client_id: {self.settings.client_id[:8]}...")
            try:
                self._app = msal.PublicClientApplication(
                    self.settings.client_id,
                    authority=self.settings.authority,
                    token_cache=self.cache,
                )
            except (ValueError, requests.exceptions.RequestException) as e:
                raise AuthError(f"No se pudo inicializar MSAL ({self.settings.authority}): {e}") from e
        return self._app

    def load_cache(self):
        """Hidrata la caché de MSAL con el archivo persistido (una vez por sesión)."""
        if self._cache_loaded:
            return
        data = self.store.load()
        if data is not None:
            try:
                self.cache.deserialize(data.decode('utf-8'))
            except ValueError as e:
                raise StorageError(f"La caché de tokens {self.store.path} está corrupta: {e}") from e
            logger.info("Caché de tokens restaurada desde disco")
        self._cache_loaded = True

    def persist_cache(self):
        """Guarda la caché en disco solo si cambió desde la última lectura."""
        if not self.cache.has_state_changed:
            logger.debug("La caché de tokens no cambió, no se escribe en disco")
            return
        self.store.save(self.cache.serialize().encode('utf-8'))
        self.cache.has_state_changed = False

    def acquire_silent(self, scopes: Optional[List[str]] = None) -> SilentOutcome:
        """
        Intenta obtener un token desde la caché, sin intervención del usuario.

        Returns:
            Silent con el resultado, o NeedsInteraction si hace falta login

        Raises:
            AuthError: Ante errores de configuración o de red
        """
        scopes = scopes or self.settings.scopes
        self.load_cache()

        accounts = self.app.get_accounts()
        if not accounts:
            logger.info("No hay cuentas en caché")
            return NeedsInteraction('no_accounts')

        account = accounts[0]
        try:
            result = self.app.acquire_token_silent_with_error(scopes, account=account)
        except requests.exceptions.RequestException as e:
            raise AuthError(f"Error de red al renovar el token: {e}", error='network_error') from e

        if not result:
            logger.info(f"No hay token válido en caché para {account.get('username')}")
            return NeedsInteraction('no_token')

        if 'access_token' in result:
            logger.info(f"Token obtenido en silencio para {account.get('username')}")
            return Silent(AuthResult.from_msal(result, account))

        error = result.get('error')
        if error in INTERACTION_REQUIRED_ERRORS:
            logger.info(f"Se requiere login interactivo: {error}")
            return NeedsInteraction(error)

        logger.error(
            f"Error obteniendo token en silencio: {error}",
            extra={'error_description': result.get('error_description')}
        )
        raise AuthError(f"Error al obtener token: {_error_message(result)}", error=error)

    def acquire_interactive(self, scopes: Optional[List[str]] = None) -> AuthResult:
        """
        Inicia sesión de forma interactiva (navegador o Device Code).

        Bloquea hasta que el usuario completa o cancela el login.

        Raises:
            AuthError: Si el usuario cancela, el login falla o hay error de red
        """
        scopes = scopes or self.settings.scopes
        self.load_cache()

        try:
            if self.settings.auth_flow == 'device_code':
                result = self._acquire_by_device_flow(scopes)
            else:
                logger.info("Iniciando login interactivo en el navegador")
                result = self.app.acquire_token_interactive(
                    scopes, prompt=msal.Prompt.SELECT_ACCOUNT
                )
        except requests.exceptions.RequestException as e:
            raise AuthError(f"Error de red durante el login: {e}", error='network_error') from e

        if 'access_token' not in result:
            logger.error(
                f"Error en login interactivo: {result.get('error')}",
                extra={'error_description': result.get('error_description')}
            )
            raise AuthError(f"Error al iniciar sesión: {_error_message(result)}", error=result.get('error'))

        logger.info("Login interactivo completado")
        return AuthResult.from_msal(result)

    def _acquire_by_device_flow(self, scopes: List[str]) -> Dict:
        flow = self.app.initiate_device_flow(scopes=scopes)
        if 'user_code' not in flow:
            raise AuthError(
                f"Error al obtener código de dispositivo: {_error_message(flow)}",
                error=flow.get('error'),
            )
        self.echo(flow['message'])
        return self.app.acquire_token_by_device_flow(flow)

    def acquire(self, scopes: Optional[List[str]] = None, allow_interactive: bool = True) -> AuthResult:
        """
        Obtiene un token: primero en silencio y, si hace falta, de forma interactiva.

        El paso interactivo se ejecuta como máximo una vez. Tras cualquiera de
        los dos caminos se persiste la caché si cambió.

        Args:
            scopes: Scopes a solicitar (por defecto los de la configuración)
            allow_interactive: Si es False, no se abre el login interactivo

        Returns:
            AuthResult con el token bearer y el usuario

        Raises:
            AuthInteractionRequired: Si hace falta login y allow_interactive es False
        """
        outcome = self.acquire_silent(scopes)
        if isinstance(outcome, NeedsInteraction):
            if not allow_interactive:
                raise AuthInteractionRequired(
                    f"No hay una sesión válida ({outcome.reason}). Ejecuta 'mstodo login' primero."
                )
            logger.info(f"Login silencioso no disponible ({outcome.reason}), pasando a modo interactivo")
            result = self.acquire_interactive(scopes)
        else:
            result = outcome.result

        self.persist_cache()
        return result

    def logout(self) -> int:
        """
        Cierra sesión: elimina todas las cuentas de la caché y borra el archivo.

        La eliminación es best-effort: si una cuenta falla se registra y se
        continúa con las demás. Una caché corrupta no impide borrar el archivo.
        Durante el logout no se escribe en disco.

        Returns:
            Cantidad de cuentas eliminadas
        """
        try:
            self.load_cache()
            accounts = self.app.get_accounts()
        except StorageError as e:
            logger.warning(f"{e}. Se borra el archivo sin eliminar cuentas")
            self._cache_loaded = True
            accounts = []

        removed = 0
        for account in accounts:
            try:
                self.app.remove_account(account)
                removed += 1
            except Exception as e:
                logger.warning(f"No se pudo eliminar la cuenta {account.get('username')}: {e}")

        self.store.clear()
        self.cache.has_state_changed = False
        logger.info(f"Sesión cerrada ({removed} cuentas eliminadas)")
        return removed
