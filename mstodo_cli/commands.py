"""
Comandos de la CLI.

Cada comando recibe el SessionContext de la invocación, los argumentos ya
parseados y el formateador, y devuelve el texto a mostrar. Las validaciones
se hacen antes de cualquier llamada remota.
"""

import argparse
import logging
from typing import Callable, Dict, List, Optional

from .context import SessionContext
from .exceptions import ValidationError
from .query import compose

logger = logging.getLogger(__name__)

NAME = 'mstodo'

HELP_TEXT = f"""Uso: {NAME} <comando> [argumentos] [--json]

Una interfaz de línea de comandos para Microsoft To Do ☑️

Opciones globales:
  --json      Salida en formato JSON
  --verbose   Muestra el log de depuración
  --no-interactive  No abre el login interactivo (útil en scripts)

Comandos:
  login       Inicia sesión con Microsoft
  logout      Cierra la sesión y borra la caché de tokens
  user        Muestra el usuario actual

  lists                                 Muestra tus listas
  show <lista> [--limit N] [--skip N]   Muestra las tareas de una lista
       [--filter F] [--search S] [--orderby O] [--important]
  add <lista> <título>                  Agrega una tarea a una lista
  complete <lista> <tarea>              Completa una tarea de una lista
  delete <lista> <tarea>                Elimina una tarea de una lista

  help        Muestra este mensaje

Las listas y tareas se indican por su índice (0, 1, ...) o por su nombre."""


def _join(words: Optional[List[str]]) -> str:
    return " ".join(words or [])


def login(context: SessionContext, args: argparse.Namespace, formatter) -> str:
    context.login()
    return formatter.user(context.client.get_me())


def logout(context: SessionContext, args: argparse.Namespace, formatter) -> str:
    return formatter.logged_out(context.logout())


def user(context: SessionContext, args: argparse.Namespace, formatter) -> str:
    client = context.ensure_authenticated()
    return formatter.user(client.get_me())


def lists(context: SessionContext, args: argparse.Namespace, formatter) -> str:
    context.ensure_authenticated()
    return formatter.lists(context.lists)


def show(context: SessionContext, args: argparse.Namespace, formatter) -> str:
    # La consulta se valida antes de autenticar o llamar a Graph
    query = compose(
        limit=args.limit,
        skip=args.skip,
        filter=args.filter,
        search=args.search,
        orderby=args.orderby,
        important=args.important,
    )
    todo_list = context.resolve_list(args.list)
    tasks = context.client.get_tasks(todo_list.id, query)
    logger.info(f"{len(tasks)} tareas obtenidas de '{todo_list.display_name}'")
    # Con --limit solo se recorta el final; el resto cambia las posiciones
    filtered = bool(query.skip or query.filter or query.orderby)
    return formatter.tasks(todo_list, tasks, filtered=filtered)


def add(context: SessionContext, args: argparse.Namespace, formatter) -> str:
    title = _join(args.title).strip()
    if not args.list:
        raise ValidationError("Por favor, indica una lista (índice o nombre). Uso: add <lista> <título>")
    if not title:
        raise ValidationError("Por favor, indica el título de la tarea. Uso: add <lista> <título>")

    payload: Dict = {"title": title}
    if args.important:
        payload["importance"] = "high"
    if args.note:
        payload["body"] = {"content": args.note, "contentType": "text"}

    todo_list = context.resolve_list(args.list)
    task = context.client.create_task(todo_list.id, payload)
    return formatter.task_added(todo_list, task)


def complete(context: SessionContext, args: argparse.Namespace, formatter) -> str:
    todo_list, task = _resolve_list_and_task(context, args, 'complete')
    completed = context.client.complete_task(todo_list.id, task.id)
    return formatter.task_completed(todo_list, completed)


def delete(context: SessionContext, args: argparse.Namespace, formatter) -> str:
    todo_list, task = _resolve_list_and_task(context, args, 'delete')
    context.client.delete_task(todo_list.id, task.id)
    return formatter.task_deleted(todo_list, task)


def _resolve_list_and_task(context: SessionContext, args: argparse.Namespace, name: str):
    identifier = _join(args.task).strip()
    if not args.list:
        raise ValidationError(f"Por favor, indica una lista (índice o nombre). Uso: {name} <lista> <tarea>")
    if not identifier:
        raise ValidationError(f"Por favor, indica una tarea (índice o título). Uso: {name} <lista> <tarea>")
    todo_list = context.resolve_list(args.list)
    return todo_list, context.resolve_task(todo_list, identifier)


def show_help(context: SessionContext, args: argparse.Namespace, formatter) -> str:
    return HELP_TEXT


COMMANDS: Dict[str, Callable[[SessionContext, argparse.Namespace, object], str]] = {
    'login': login,
    'logout': logout,
    'user': user,
    'lists': lists,
    'show': show,
    'add': add,
    'complete': complete,
    'delete': delete,
    'help': show_help,
}
