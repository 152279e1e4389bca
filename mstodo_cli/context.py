import logging
from typing import Callable, List, Optional

from .auth import AuthResult, AuthSession
from .client import MicrosoftTodoClient
from .exceptions import EntityNotFound, ValidationError
from .models import EntityIndex, TodoList, TodoTask
from .resolver import resolve

logger = logging.getLogger(__name__)


class SessionContext:
    """
    Estado de una invocación de la CLI: sesión autenticada, cliente de Graph
    e índice de listas.

    Se construye una vez por comando y se pasa explícitamente a cada comando.
    El índice de listas se carga automáticamente la primera vez que se
    autentica, así los comandos no tienen que comprobar las dos cosas.
    """

    def __init__(
        self,
        auth: AuthSession,
        client_factory: Callable[[str], MicrosoftTodoClient] = MicrosoftTodoClient,
        allow_interactive: bool = True,
    ):
        self.auth = auth
        self.allow_interactive = allow_interactive
        self.client_factory = client_factory
        self.session: Optional[AuthResult] = None
        self.client: Optional[MicrosoftTodoClient] = None
        self.lists = EntityIndex()

    def _start_session(self):
        self.session = self.auth.acquire(allow_interactive=self.allow_interactive)
        self.client = self.client_factory(self.session.access_token)
        logger.info(f"Sesión iniciada como {self.session.username}")

    def ensure_authenticated(self) -> MicrosoftTodoClient:
        """
        Garantiza que hay sesión; si no, la obtiene y carga el índice de listas.

        Idempotente dentro de la misma invocación.

        Returns:
            El cliente de Graph autenticado
        """
        if self.session is None:
            self._start_session()
        if len(self.lists) == 0:
            self.populate_entity_index()
        return self.client

    def populate_entity_index(self):
        """Reemplaza el índice completo con las listas del servidor, en su orden."""
        if self.client is None:
            self._start_session()
        lists = self.client.get_lists()
        self.lists.replace(lists)
        logger.debug(f"Índice de listas cargado ({len(lists)} listas)")

    def invalidate(self):
        """Descarta la sesión en memoria y el índice de listas."""
        self.lists.clear()
        self.session = None
        self.client = None

    def login(self) -> AuthResult:
        """Inicia sesión (silenciosa si es posible) y fuerza la recarga de listas."""
        self.invalidate()
        self._start_session()
        self.populate_entity_index()
        return self.session

    def logout(self) -> int:
        removed = self.auth.logout()
        self.invalidate()
        return removed

    def resolve_list(self, identifier: Optional[str]) -> TodoList:
        """
        Busca una lista por índice o nombre.

        Raises:
            ValidationError: Si no se indicó la lista
            EntityNotFound: Si no existe
        """
        if not identifier:
            raise ValidationError("Por favor, indica una lista (índice o nombre).")
        self.ensure_authenticated()
        todo_list = resolve(identifier, self.lists)
        if todo_list is None:
            raise EntityNotFound(f"No se encontró la lista '{identifier}'.")
        return todo_list

    def resolve_task(self, todo_list: TodoList, identifier: Optional[str]) -> TodoTask:
        """
        Busca una tarea de la lista por índice o título.

        Raises:
            ValidationError: Si no se indicó la tarea
            EntityNotFound: Si no existe en la lista
        """
        if not identifier:
            raise ValidationError("Por favor, indica una tarea (índice o título).")
        client = self.ensure_authenticated()
        tasks: List[TodoTask] = client.get_tasks(todo_list.id)
        task = resolve(identifier, tasks)
        if task is None:
            raise EntityNotFound(
                f"No se encontró la tarea '{identifier}' en la lista '{todo_list.display_name}'."
            )
        return task
