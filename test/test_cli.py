"""
Tests de los comandos y del punto de entrada de la CLI.
"""

import json
import logging

import pytest

from conftest import FakeGraphClient, FakeMsalApp, FakeTokenCache, make_list, make_task

import mstodo_cli.cli as cli
from mstodo_cli import commands
from mstodo_cli.auth import AuthSession
from mstodo_cli.context import SessionContext
from mstodo_cli.exceptions import EntityNotFound, ValidationError
from mstodo_cli.formatters import FILTERED_NOTE, JsonFormatter, TextFormatter, get_formatter


@pytest.fixture
def graph():
    return FakeGraphClient(
        lists=[make_list("l0", "Tasks"), make_list("l1", "🏠 Casa")],
        tasks={"l1": [make_task("t0", "Barrer"), make_task("t1", "Regar plantas", importance="high")]},
    )


@pytest.fixture
def context(settings, store, graph):
    cache = FakeTokenCache()
    auth = AuthSession(settings, store, cache=cache, app=FakeMsalApp(cache))
    return SessionContext(auth, client_factory=lambda token: graph)


def parse(*argv):
    return cli.build_parser().parse_args(list(argv))


@pytest.mark.unit
def test_lists_command_shows_positions(context):
    output = commands.lists(context, parse("lists"), TextFormatter())

    assert " 0. Tasks" in output
    assert " 1. 🏠 Casa" in output


@pytest.mark.unit
def test_show_composes_query(context, graph):
    args = parse("show", "casa", "--limit", "5", "--search", "plantas", "--important")

    output = commands.show(context, args, TextFormatter())

    _, list_id, query = graph.calls[-1]
    assert list_id == "l1"
    assert query.top == 5
    assert query.filter == (
        "(contains(title,'plantas') or contains(body/content,'plantas')) and importance eq 'high'"
    )
    assert "[○] ❗Regar plantas" in output


@pytest.mark.unit
def test_show_invalid_limit_makes_no_remote_call(context, graph):
    with pytest.raises(ValidationError):
        commands.show(context, parse("show", "casa", "--limit", "abc"), TextFormatter())

    assert graph.calls == []
    assert context.session is None


@pytest.mark.unit
def test_add_without_title_makes_no_remote_call(context, graph):
    with pytest.raises(ValidationError):
        commands.add(context, parse("add", "casa"), TextFormatter())

    assert graph.calls == []


@pytest.mark.unit
def test_add_joins_title_words(context, graph):
    args = parse("add", "1", "Comprar", "bombillas", "--important", "--note", "LED")

    output = commands.add(context, args, TextFormatter())

    assert graph.calls[-1] == (
        "create_task",
        "l1",
        {
            "title": "Comprar bombillas",
            "importance": "high",
            "body": {"content": "LED", "contentType": "text"},
        },
    )
    assert "Comprar bombillas" in output


@pytest.mark.unit
def test_complete_resolves_task_by_title(context, graph):
    output = commands.complete(context, parse("done", "casa", "regar", "plantas"), TextFormatter())

    assert graph.calls[-1] == ("complete_task", "l1", "t1")
    assert "completada" in output


@pytest.mark.unit
def test_delete_unknown_task_aborts_without_deleting(context, graph):
    with pytest.raises(EntityNotFound):
        commands.delete(context, parse("delete", "casa", "Cocinar"), TextFormatter())

    assert all(call[0] != "delete_task" for call in graph.calls)


@pytest.mark.unit
def test_delete_by_position(context, graph):
    commands.delete(context, parse("delete", "casa", "0"), TextFormatter())

    assert graph.calls[-1] == ("delete_task", "l1", "t0")


@pytest.mark.unit
def test_json_formatter_outputs_raw_payloads(context):
    output = commands.lists(context, parse("lists", "--json"), get_formatter(True))

    assert json.loads(output) == [
        {"id": "l0", "displayName": "Tasks"},
        {"id": "l1", "displayName": "🏠 Casa"},
    ]


@pytest.mark.unit
def test_login_then_user(context, graph):
    output = commands.login(context, parse("login"), JsonFormatter())

    assert json.loads(output)["userPrincipalName"] == "ana@example.com"
    assert graph.calls == [("get_lists",), ("get_me",)]


@pytest.mark.unit
def test_aliases_map_to_commands():
    assert cli.canonical_command("list") == "lists"
    assert cli.canonical_command("view") == "show"
    assert cli.canonical_command("strike") == "complete"
    assert cli.canonical_command("delete") == "delete"


@pytest.mark.unit
def test_global_flags_after_subcommand():
    args = parse("lists", "--json")

    assert args.json is True
    assert args.verbose is False


@pytest.mark.unit
def test_main_without_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "Uso: mstodo" in capsys.readouterr().out


@pytest.mark.unit
def test_main_reports_errors_in_one_line(capsys, monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "configure_logging", lambda app_dir, verbose=False: str(tmp_path / "error.log"))
    monkeypatch.chdir(tmp_path)

    code = cli.main(["lists"])

    out = capsys.readouterr().out
    assert code == 1
    assert out.startswith("❌ Error: No se encontró CLIENT_ID")
    assert out.count("\n") == 1


@pytest.mark.unit
def test_main_validates_before_authenticating(capsys, monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "configure_logging", lambda app_dir, verbose=False: str(tmp_path / "error.log"))
    monkeypatch.setenv("MSTODO_CLIENT_ID", "abc")
    monkeypatch.chdir(tmp_path)

    def forbidden(*args, **kwargs):
        raise AssertionError("no debe autenticar")

    monkeypatch.setattr(AuthSession, "acquire", forbidden)

    code = cli.main(["show", "Tasks", "--skip", "dos"])

    assert code == 1
    assert "--skip" in capsys.readouterr().out


@pytest.mark.unit
def test_no_interactive_flag_is_parsed_in_both_positions():
    assert parse("--no-interactive", "lists").no_interactive is True
    assert parse("lists", "--no-interactive").no_interactive is True
    assert parse("lists").no_interactive is False


@pytest.mark.unit
def test_show_notes_relative_positions_when_query_reorders(context):
    plain = commands.show(context, parse("show", "casa", "--limit", "1"), TextFormatter())
    skipped = commands.show(context, parse("show", "casa", "--skip", "1"), TextFormatter())

    assert FILTERED_NOTE not in plain
    assert skipped.splitlines()[1] == FILTERED_NOTE


@pytest.mark.unit
def test_configure_logging_replaces_previous_handlers(tmp_path):
    root = logging.getLogger()
    try:
        cli.configure_logging(str(tmp_path), verbose=True)
        log_path = cli.configure_logging(str(tmp_path))

        ours = [h for h in root.handlers if h in cli._installed_handlers]
        assert len(ours) == 1
        assert ours[0].baseFilename == log_path
        assert all(not isinstance(h, logging.FileHandler) or h in ours for h in root.handlers)
    finally:
        for handler in cli._installed_handlers:
            root.removeHandler(handler)
            handler.close()
        cli._installed_handlers.clear()
