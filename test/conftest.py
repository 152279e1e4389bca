"""
Fixtures compartidas para los tests de mstodo-cli.

MSAL y Microsoft Graph se reemplazan por dobles en memoria; nunca se hace
una llamada de red.
"""

from __future__ import annotations

import json

import pytest

from mstodo_cli.config import Settings
from mstodo_cli.models import TodoList, TodoTask
from mstodo_cli.token_cache import TokenCacheStore


class FakeTokenCache:
    """Imita msal.SerializableTokenCache: solo guarda cuentas."""

    def __init__(self):
        self.accounts = []
        self.has_state_changed = False

    def serialize(self) -> str:
        return json.dumps({"accounts": self.accounts})

    def deserialize(self, state: str):
        self.accounts = json.loads(state)["accounts"]
        self.has_state_changed = False


class FakeMsalApp:
    """Imita msal.PublicClientApplication sobre un FakeTokenCache."""

    def __init__(self, cache: FakeTokenCache, silent_result=None, interactive_result=None):
        self.cache = cache
        self.silent_result = silent_result
        self.interactive_result = interactive_result
        self.calls = []
        self.fail_removal_for = set()

    def get_accounts(self, username=None):
        return list(self.cache.accounts)

    def acquire_token_silent_with_error(self, scopes, account=None):
        self.calls.append(("silent", list(scopes), account["username"]))
        if self.silent_result is not None:
            return self.silent_result
        return {"access_token": f"silent-{account['username']}", "expires_in": 3600}

    def acquire_token_interactive(self, scopes, prompt=None):
        self.calls.append(("interactive", list(scopes), prompt))
        if self.interactive_result is not None:
            return self.interactive_result
        return self._sign_in("ana@example.com")

    def initiate_device_flow(self, scopes=None):
        self.calls.append(("device_flow", list(scopes)))
        return {"user_code": "ABC-DEF", "message": "Visita https://microsoft.com/devicelogin"}

    def acquire_token_by_device_flow(self, flow):
        return self._sign_in("ana@example.com")

    def remove_account(self, account):
        if account["username"] in self.fail_removal_for:
            raise RuntimeError("removal failed")
        self.cache.accounts.remove(account)
        self.cache.has_state_changed = True

    def _sign_in(self, username: str):
        self.cache.accounts.append({"username": username, "home_account_id": f"{username}-id"})
        self.cache.has_state_changed = True
        return {
            "access_token": f"interactive-{username}",
            "expires_in": 3600,
            "id_token_claims": {"preferred_username": username, "oid": f"{username}-oid"},
        }


class FakeGraphClient:
    """Cliente de Graph en memoria que registra las llamadas recibidas."""

    def __init__(self, lists=None, tasks=None):
        self.lists = lists if lists is not None else []
        self.tasks = tasks if tasks is not None else {}
        self.calls = []

    def get_me(self):
        self.calls.append(("get_me",))
        return {"displayName": "Ana", "userPrincipalName": "ana@example.com"}

    def get_lists(self):
        self.calls.append(("get_lists",))
        return list(self.lists)

    def get_tasks(self, list_id, query=None):
        self.calls.append(("get_tasks", list_id, query))
        return list(self.tasks.get(list_id, []))

    def create_task(self, list_id, payload):
        self.calls.append(("create_task", list_id, payload))
        return TodoTask.from_graph({"id": "new", **payload})

    def complete_task(self, list_id, task_id):
        self.calls.append(("complete_task", list_id, task_id))
        task = next(t for t in self.tasks[list_id] if t.id == task_id)
        return TodoTask(id=task.id, title=task.title, status="completed", raw=task.raw)

    def delete_task(self, list_id, task_id):
        self.calls.append(("delete_task", list_id, task_id))


def make_list(list_id: str, name: str) -> TodoList:
    return TodoList.from_graph({"id": list_id, "displayName": name})


def make_task(task_id: str, title: str, **extra) -> TodoTask:
    return TodoTask.from_graph({"id": task_id, "title": title, **extra})


@pytest.fixture
def app_dir(tmp_path):
    return str(tmp_path / "mstodo-cli")


@pytest.fixture
def settings(app_dir):
    return Settings(client_id="11111111-2222-3333-4444-555555555555", app_dir=app_dir)


@pytest.fixture
def store(app_dir):
    return TokenCacheStore(app_dir)


@pytest.fixture(autouse=True)
def isolate_app_dir(tmp_path, monkeypatch):
    """Evita que los tests lean o escriban el directorio real de la aplicación."""
    monkeypatch.setenv("MSTODO_APP_DIR", str(tmp_path / "mstodo-cli"))
    for key in ("MSTODO_CLIENT_ID", "MSTODO_TENANT_ID", "MSTODO_SCOPES", "MSTODO_AUTH_FLOW"):
        monkeypatch.delenv(key, raising=False)
