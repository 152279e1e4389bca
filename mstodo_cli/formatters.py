"""
Presentación de resultados: texto legible o JSON.

El formateador se elige una sola vez al arrancar (--json) y los comandos
llaman siempre a los mismos métodos, sin comprobar de qué tipo es.
"""

import json
from typing import Dict, Iterable

from .models import TodoList, TodoTask

FILTERED_NOTE = (
    "   (índices relativos a esta consulta; complete y delete usan la lista completa)"
)


class TextFormatter:
    """Salida para humanos, con iconos."""

    def lists(self, lists: Iterable[TodoList]) -> str:
        lines = ["📋 Tus listas:", ""]
        for i, todo_list in enumerate(lists):
            lines.append(f" {i}. {todo_list.display_name}")
        return "\n".join(lines)

    def tasks(self, todo_list: TodoList, tasks: Iterable[TodoTask], filtered: bool = False) -> str:
        lines = [f"📋 {todo_list.display_name}", ""]
        if filtered:
            lines.insert(1, FILTERED_NOTE)
        count = 0
        for i, task in enumerate(tasks):
            status_icon = "✓" if task.is_completed else "○"
            importance_icon = "❗" if task.is_important else ""
            lines.append(f" {i}. [{status_icon}] {importance_icon}{task.title}")
            if task.body.strip():
                lines.append(f"    Notas: {task.body.strip()[:100]}")
            count += 1
        if not count:
            lines.append(" (sin tareas)")
        return "\n".join(lines)

    def user(self, profile: Dict) -> str:
        name = profile.get('displayName') or ''
        email = profile.get('mail') or profile.get('userPrincipalName') or ''
        return f"☑️ Sesión iniciada como: {name} <{email}>"

    def task_added(self, todo_list: TodoList, task: TodoTask) -> str:
        return f"✅ Tarea '{task.title}' agregada a la lista '{todo_list.display_name}'."

    def task_completed(self, todo_list: TodoList, task: TodoTask) -> str:
        return f"✅ Tarea '{task.title}' completada en la lista '{todo_list.display_name}'."

    def task_deleted(self, todo_list: TodoList, task: TodoTask) -> str:
        return f"🗑️ Tarea '{task.title}' eliminada de la lista '{todo_list.display_name}'."

    def logged_out(self, removed: int) -> str:
        return "👋 Sesión cerrada."


class JsonFormatter:
    """Salida JSON con los objetos tal como los devuelve Microsoft Graph."""

    def _dump(self, data) -> str:
        return json.dumps(data, indent=2, ensure_ascii=False)

    def lists(self, lists: Iterable[TodoList]) -> str:
        return self._dump([todo_list.raw for todo_list in lists])

    def tasks(self, todo_list: TodoList, tasks: Iterable[TodoTask], filtered: bool = False) -> str:
        return self._dump([task.raw for task in tasks])

    def user(self, profile: Dict) -> str:
        return self._dump(profile)

    def task_added(self, todo_list: TodoList, task: TodoTask) -> str:
        return self._dump(task.raw)

    def task_completed(self, todo_list: TodoList, task: TodoTask) -> str:
        return self._dump(task.raw)

    def task_deleted(self, todo_list: TodoList, task: TodoTask) -> str:
        return self._dump(task.raw)

    def logged_out(self, removed: int) -> str:
        return self._dump({'logged_out': True, 'accounts_removed': removed})


def get_formatter(as_json: bool = False):
    return JsonFormatter() if as_json else TextFormatter()
