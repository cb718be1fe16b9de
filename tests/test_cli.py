import pytest

from transrelay.cli import parse_args


def test_parse_args_serve_defaults():
    args = parse_args(["serve"])
    assert args.command == "serve"
    assert args.host == "0.0.0.0"
    assert args.port == 8080


def test_parse_args_listen_with_language():
    args = parse_args(["listen", "abc", "--language", "fr"])
    assert (args.command, args.session_id, args.language) == ("listen", "abc", "fr")


def test_parse_args_create_session_id_optional():
    assert parse_args(["create-session"]).session_id is None
    assert parse_args(["create-session", "abc"]).session_id == "abc"


def test_parse_args_requires_command():
    with pytest.raises(SystemExit):
        parse_args([])
