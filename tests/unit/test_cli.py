"""Command-line parsing into configuration."""

import pytest

from liveserve import __version__
from liveserve.base.config import LiveServeConfig
from liveserve.cli import build_parser, config_from_args, main


def parse(*argv):
    defaults = LiveServeConfig()
    return config_from_args(build_parser(defaults).parse_args(list(argv)), defaults)


def test_defaults_without_arguments():
    config = parse()
    assert config.server.roots == (".",)
    assert config.server.port == 3000
    assert config.server.index is True
    assert config.server.enforce_safe_roots is True


def test_roots_and_flags():
    config = parse("public", "assets", "-p", "8080", "-s", "8081", "-w", "--cors", "--no-index", "-H", "127.0.0.1")
    assert config.server.roots == ("public", "assets")
    assert (config.server.port, config.server.socket_port) == (8080, 8081)
    assert config.server.watch and config.server.cors
    assert config.server.index is False
    assert config.server.host == "127.0.0.1"


def test_https_and_certificate_paths():
    config = parse("-S", "-c", "dev.crt", "-k", "dev.key")
    assert config.server.https
    assert (config.server.cert, config.server.key) == ("dev.crt", "dev.key")


def test_allow_unsafe_roots_and_debug():
    config = parse("--allow-unsafe-roots", "--debug")
    assert config.server.enforce_safe_roots is False
    assert config.debug is True


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_unusable_root_exits_with_error(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        main([str(tmp_path / "missing"), "-p", "0", "-s", "0"])
    assert exc_info.value.code == 1
