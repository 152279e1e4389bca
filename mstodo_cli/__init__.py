from .auth import AuthResult, AuthSession, NeedsInteraction, Silent
from .client import MicrosoftTodoClient
from .config import Settings, load_env_file
from .context import SessionContext
from .query import QuerySpec, compose
from .resolver import resolve
from .token_cache import TokenCacheStore

__version__ = '0.1.0'
