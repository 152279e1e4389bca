import logging
from typing import Dict, List, Optional

import requests

from .exceptions import RemoteOperationError
from .models import TodoList, TodoTask
from .query import QuerySpec

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10


class MicrosoftTodoClient:
    """Cliente para interactuar con Microsoft To Do API"""

    BASE_URL = "https://graph.microsoft.com/v1.0"

    def __init__(self, access_token: str, timeout: int = REQUEST_TIMEOUT):
        self.access_token = access_token
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json"
        }

    def _make_request(
        self,
        method: str,
        url: str,
        action: str,
        params: Optional[Dict] = None,
        data: Optional[Dict] = None,
    ) -> Dict:
        """
        Realiza una petición a Graph y devuelve el JSON de la respuesta.

        Args:
            method: Método HTTP (GET, POST, PATCH, DELETE)
            url: URL completa (las páginas siguientes usan @odata.nextLink)
            action: Descripción de la operación para los mensajes de error
            params: Parámetros de query
            data: Cuerpo JSON

        Raises:
            RemoteOperationError: Si la respuesta no es 2xx o hay error de red
        """
        logger.debug(f"{method} {url}", extra={'params': params})
        try:
            response = requests.request(
                method, url, headers=self.headers, params=params, json=data, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Error de red al {action}: {e}", exc_info=True)
            raise RemoteOperationError(f"Error de red al {action}: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Error al {action}: {response.status_code}")
            raise RemoteOperationError(
                f"Error al {action}: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def get_me(self) -> Dict:
        """Obtiene el perfil del usuario autenticado."""
        return self._make_request("GET", f"{self.BASE_URL}/me", "obtener el perfil")

    def get_lists(self) -> List[TodoList]:
        """
        Obtiene todas las listas de tareas del usuario, en el orden del servidor.

        Returns:
            Listas de tareas
        """
        # Soporte para paginación (máximo $top=100 por página)
        url = f"{self.BASE_URL}/me/todo/lists"
        params: Optional[Dict] = {'$top': 100}
        lists = []
        while url:
            data = self._make_request("GET", url, "obtener listas", params=params)
            lists.extend(TodoList.from_graph(item) for item in data.get('value', []))
            url = data.get('@odata.nextLink')  # Si hay más páginas, continuar
            params = None  # nextLink ya incluye la query
        return lists

    def get_tasks(self, list_id: str, query: Optional[QuerySpec] = None) -> List[TodoTask]:
        """
        Obtiene las tareas de una lista aplicando filtro, orden y paginación.

        Con query.top se deja de paginar al alcanzar ese número de tareas.

        Args:
            list_id: ID de la lista de tareas
            query: Consulta combinada (ver query.compose)

        Returns:
            Tareas en el orden devuelto por el servidor
        """
        query = query or QuerySpec()
        url = f"{self.BASE_URL}/me/todo/lists/{list_id}/tasks"
        params: Optional[Dict] = query.to_params()
        tasks: List[TodoTask] = []
        while url:
            data = self._make_request("GET", url, "obtener tareas", params=params)
            tasks.extend(TodoTask.from_graph(item) for item in data.get('value', []))
            if query.top is not None and len(tasks) >= query.top:
                return tasks[:query.top]
            url = data.get('@odata.nextLink')
            params = None
        return tasks

    def create_task(self, list_id: str, payload: Dict) -> TodoTask:
        """Crea una tarea en la lista indicada."""
        data = self._make_request(
            "POST", f"{self.BASE_URL}/me/todo/lists/{list_id}/tasks", "crear la tarea", data=payload
        )
        return TodoTask.from_graph(data)

    def update_task(self, list_id: str, task_id: str, payload: Dict) -> TodoTask:
        """Actualiza (PATCH) los campos indicados de una tarea."""
        data = self._make_request(
            "PATCH",
            f"{self.BASE_URL}/me/todo/lists/{list_id}/tasks/{task_id}",
            "actualizar la tarea",
            data=payload,
        )
        return TodoTask.from_graph(data)

    def complete_task(self, list_id: str, task_id: str) -> TodoTask:
        return self.update_task(list_id, task_id, {"status": "completed"})

    def delete_task(self, list_id: str, task_id: str):
        self._make_request(
            "DELETE", f"{self.BASE_URL}/me/todo/lists/{list_id}/tasks/{task_id}", "eliminar la tarea"
        )
