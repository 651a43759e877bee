"""Unit tests for the CLI."""

from __future__ import annotations

import json
import logging

import httpx
import pytest

from rentvest.cli.main import (
    EXIT_API_ERROR,
    EXIT_OK,
    EXIT_USAGE,
    build_arg_parser,
    endpoints_table,
    main,
    parse_data,
    parse_params,
    run_command,
)
from rentvest.core.api.http.auth import TOKEN_KEY, InMemoryTokenStore
from rentvest.core.session import RentvestSession
from tests.conftest import Recorder, envelope


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def tokens() -> InMemoryTokenStore:
    return InMemoryTokenStore({TOKEN_KEY: "tok-123"})


@pytest.fixture
async def session(app_config, recorder: Recorder, tokens: InMemoryTokenStore):
    s = RentvestSession(
        app_config=app_config, token_store=tokens, transport=httpx.MockTransport(recorder)
    )
    yield s
    await s.aclose()


def test_parse_params():
    assert parse_params(["page=2", "q=a=b"]) == {"page": "2", "q": "a=b"}
    assert parse_params(None) == {}
    with pytest.raises(ValueError):
        parse_params(["page"])


def test_parse_data():
    assert parse_data('{"title": "Loft"}') == {"title": "Loft"}
    assert parse_data(None) is None
    with pytest.raises(ValueError, match="not valid JSON"):
        parse_data("{oops")


def test_arg_parser_call():
    args = build_arg_parser().parse_args(
        ["call", "homeowner", "get_property", "42", "--param", "a=b"]
    )
    assert args.cmd == "call"
    assert args.backend == "homeowner"
    assert args.operation == "get_property"
    assert args.args == ["42"]
    assert args.param == ["a=b"]


def test_arg_parser_rejects_unknown_backend():
    with pytest.raises(SystemExit):
        build_arg_parser().parse_args(["call", "payments", "list"])


def test_endpoints_table_filters_backend(app_config):
    session = RentvestSession(app_config=app_config, token_store=InMemoryTokenStore())
    table = endpoints_table(session, "kyc")
    assert table.row_count == 4


class TestRunCommand:
    async def test_call_prints_body(self, session, recorder: Recorder, capsys):
        recorder.add(
            "GET", "/api/kyc/status/u1", httpx.Response(200, json=envelope({"status": "pending"}))
        )
        args = build_arg_parser().parse_args(["call", "kyc", "status", "u1"])

        assert await run_command(args, session) == EXIT_OK
        assert '"pending"' in capsys.readouterr().out

    async def test_api_failure_exit_code(self, session, recorder: Recorder):
        args = build_arg_parser().parse_args(["call", "parcel", "detail", "404"])
        assert await run_command(args, session) == EXIT_API_ERROR

    async def test_usage_errors(self, session):
        unknown = build_arg_parser().parse_args(["call", "chat", "delete_chat"])
        assert await run_command(unknown, session) == EXIT_USAGE

        wrong_arity = build_arg_parser().parse_args(["call", "chat", "messages"])
        assert await run_command(wrong_arity, session) == EXIT_USAGE

        bad_param = build_arg_parser().parse_args(["call", "chat", "list_chats", "--param", "x"])
        assert await run_command(bad_param, session) == EXIT_USAGE

    async def test_login_with_otp(self, session, recorder: Recorder, tokens: InMemoryTokenStore):
        recorder.add(
            "POST",
            "/api/auth/signin",
            httpx.Response(200, json=envelope({"requiresOtp": True})),
        )
        recorder.add(
            "POST",
            "/api/auth/verify-login-otp",
            httpx.Response(
                200, json=envelope({"user": {"email": "ada@example.com"}, "token": "fresh"})
            ),
        )
        args = build_arg_parser().parse_args(
            ["login", "ada@example.com", "--password", "pw", "--otp", "123456"]
        )

        assert await run_command(args, session) == EXIT_OK
        assert await tokens.get(TOKEN_KEY) == "fresh"
        assert json.loads(recorder.requests[1].content) == {
            "identifier": "ada@example.com",
            "otp": "123456",
        }

    async def test_logout(self, session, recorder: Recorder, tokens: InMemoryTokenStore):
        recorder.add("POST", "/api/auth/logout", httpx.Response(200, json=envelope()))
        args = build_arg_parser().parse_args(["logout"])

        assert await run_command(args, session) == EXIT_OK
        assert await tokens.get(TOKEN_KEY) is None


class TestMain:
    def test_endpoints(self, tmp_path, capsys):
        config_file = tmp_path / "rentvest.json"
        config_file.write_text(json.dumps({"token_store_path": str(tmp_path / "t.json")}))

        code = main(["--app-config", str(config_file), "endpoints", "--backend", "parcel"])

        assert code == EXIT_OK
        assert "/parcels/search" in capsys.readouterr().out

    def test_unreadable_config(self, tmp_path):
        config_file = tmp_path / "rentvest.json"
        config_file.write_text("{not json")

        assert main(["--app-config", str(config_file), "endpoints"]) == EXIT_USAGE
