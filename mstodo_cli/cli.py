import argparse
import logging
import os
import sys
from typing import List, Optional

from .auth import AuthSession
from .commands import COMMANDS, HELP_TEXT, NAME
from .config import Settings, get_app_dir
from .context import SessionContext
from .exceptions import TodoCliError
from .formatters import get_formatter

logger = logging.getLogger(__name__)

ERROR_LOG_FILE = 'error.log'
LOG_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'

_installed_handlers: List[logging.Handler] = []

# Alias heredados de la versión anterior de la herramienta
ALIASES = {
    'lists': ['list'],
    'show': ['view'],
    'add': ['create'],
    'complete': ['done', 'strike'],
}


def build_parser() -> argparse.ArgumentParser:
    """Parser de la línea de comandos (global --json/--verbose + subcomandos)."""
    parser = argparse.ArgumentParser(prog=NAME, add_help=False)
    parser.add_argument('--json', action='store_true', help='Salida en formato JSON')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log de depuración en stderr')
    parser.add_argument(
        '--no-interactive', action='store_true', dest='no_interactive',
        help='Falla en lugar de abrir el login interactivo'
    )
    parser.add_argument('--help', '-h', action='store_true', dest='show_help')

    # Permite escribir las opciones globales también después del subcomando
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--json', action='store_true', default=argparse.SUPPRESS)
    common.add_argument('--verbose', '-v', action='store_true', default=argparse.SUPPRESS)
    common.add_argument('--no-interactive', action='store_true', dest='no_interactive', default=argparse.SUPPRESS)

    subparsers = parser.add_subparsers(dest='command')

    for name in ('login', 'logout', 'user', 'lists', 'help'):
        subparsers.add_parser(name, aliases=ALIASES.get(name, []), parents=[common])

    show = subparsers.add_parser('show', aliases=ALIASES['show'], parents=[common])
    show.add_argument('list', nargs='?')
    show.add_argument('--limit')
    show.add_argument('--skip')
    show.add_argument('--filter')
    show.add_argument('--search')
    show.add_argument('--orderby')
    show.add_argument('--important', action='store_true')

    add = subparsers.add_parser('add', aliases=ALIASES['add'], parents=[common])
    add.add_argument('list', nargs='?')
    add.add_argument('title', nargs='*')
    add.add_argument('--important', action='store_true')
    add.add_argument('--note')

    for name in ('complete', 'delete'):
        sub = subparsers.add_parser(name, aliases=ALIASES.get(name, []), parents=[common])
        sub.add_argument('list', nargs='?')
        sub.add_argument('task', nargs='*')

    return parser


def canonical_command(command: str) -> str:
    for name, aliases in ALIASES.items():
        if command in aliases:
            return name
    return command


def configure_logging(app_dir: str, verbose: bool = False) -> str:
    """
    Configura el log: errores al archivo <app_dir>/error.log y, con
    --verbose, todo el detalle por stderr.

    Returns:
        Ruta del archivo de log de errores
    """
    os.makedirs(app_dir, exist_ok=True)
    log_path = os.path.join(app_dir, ERROR_LOG_FILE)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)

    # Reemplaza los handlers de una configuración anterior en el mismo proceso
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_path, encoding='utf-8', delay=True)
    file_handler.setLevel(logging.WARNING)
    _installed_handlers.append(file_handler)

    if verbose:
        _installed_handlers.append(logging.StreamHandler(sys.stderr))

    for handler in _installed_handlers:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    # msal y urllib3 son muy verbosos en DEBUG
    logging.getLogger('msal').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    return log_path


def run(args: argparse.Namespace, config_dir: str = '.') -> str:
    """Carga la configuración, construye la sesión y ejecuta el comando."""
    command = canonical_command(args.command)
    if command == 'help':
        return HELP_TEXT

    settings = Settings.load(config_dir)
    context = SessionContext(AuthSession(settings), allow_interactive=not args.no_interactive)
    formatter = get_formatter(args.json)
    return COMMANDS[command](context, args, formatter)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Punto de entrada de la CLI.

    Returns:
        Código de salida: 0 si todo fue bien, 1 ante cualquier error
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.show_help or not args.command:
        print(HELP_TEXT)
        return 0

    log_path = None
    try:
        log_path = configure_logging(get_app_dir(), args.verbose)
        print(run(args))
        return 0
    except TodoCliError as e:
        logger.warning(f"{type(e).__name__}: {e}")
        print(f"❌ Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠️  Operación cancelada")
        return 130
    except Exception as e:
        logger.error(f"Error inesperado: {e}", exc_info=True)
        details = f" (más detalles en {log_path})" if log_path else ""
        print(f"❌ Ocurrió un error: {e}{details}")
        return 1
