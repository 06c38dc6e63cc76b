from pathlib import Path
from typing import Any

import pytest

from servedir import __main__ as cli
from servedir.config import PORT
from servedir.utils.logging import LogLevel, LogSettings


class Recorder:
	"""Stands in for `run`, recording how the server would be started."""

	def __init__(self, error: Exception | None = None) -> None:
		self.calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []
		self.error = error

	def __call__(self, *args: Any, **kwargs: Any) -> None:
		self.calls.append((args, kwargs))
		if self.error:
			raise self.error


@pytest.fixture
def recorder(monkeypatch: pytest.MonkeyPatch) -> Recorder:
	rec = Recorder()
	monkeypatch.setattr(cli, "run", rec)
	return rec


def test_defaults():
	options = cli.parser().parse_args([])
	assert options.path == "."
	assert options.port == PORT
	assert options.host == "0.0.0.0"
	assert options.cert is None and options.key is None
	assert options.dirListing and options.dotfiles and options.cors
	assert not options.verbose


def test_flags():
	options = cli.parser().parse_args(
		[
			"site",
			"-p",
			"8080",
			"--host",
			"127.0.0.1",
			"--no-dir-listing",
			"--no-dotfiles",
			"--no-cors",
			"-v",
		]
	)
	assert options.path == "site"
	assert options.port == 8080
	assert options.host == "127.0.0.1"
	assert not (options.dirListing or options.dotfiles or options.cors)
	assert options.verbose
	options = cli.parser().parse_args(["--cors", "--dotfiles", "-c", "c.pem", "-k", "k.pem"])
	assert options.cors and options.dotfiles
	assert (options.cert, options.key) == ("c.pem", "k.pem")


@pytest.mark.parametrize("args", [["--cert", "c.pem"], ["-k", "k.pem"]])
def test_tls_flags_go_together(
	args: list[str], recorder: Recorder, capsys: pytest.CaptureFixture[str]
):
	with pytest.raises(SystemExit) as e:
		cli.main(args)
	assert e.value.code == 2
	assert "--key and --cert are required for TLS" in capsys.readouterr().err
	assert not recorder.calls


def test_help(capsys: pytest.CaptureFixture[str]):
	with pytest.raises(SystemExit) as e:
		cli.main(["--help"])
	assert e.value.code == 0
	out = capsys.readouterr().out
	assert "--no-dir-listing" in out
	assert "All TLS options are required when one is provided." in out


def test_starts_server(site: Path, recorder: Recorder):
	assert cli.main([str(site), "-p", "0", "--no-dotfiles", "-v"]) == 0
	((service,), kwargs) = recorder.calls[0]
	assert service.config.root == site
	assert not service.config.allowDotfiles
	assert service.config.allowListing
	assert not service.config.quiet
	assert kwargs["port"] == 0
	assert kwargs["ssl"] is None
	assert callable(kwargs["onStart"])
	assert LogSettings.level == LogLevel.Info


def test_quiet_by_default(site: Path, recorder: Recorder):
	assert cli.main([str(site)]) == 0
	((service,), _) = recorder.calls[0]
	assert service.config.quiet
	assert LogSettings.level == LogLevel.Warning


def test_missing_directory(tmp_path: Path, recorder: Recorder):
	assert cli.main([str(tmp_path / "missing")]) == 1
	assert not recorder.calls


def test_invalid_certificate(site: Path, recorder: Recorder):
	(site / "cert.pem").write_text("not a certificate")
	(site / "key.pem").write_text("not a key")
	args = [str(site), "-c", str(site / "cert.pem"), "-k", str(site / "key.pem")]
	assert cli.main(args) == 1
	assert cli.main([str(site), "-c", "missing.pem", "-k", "missing.pem"]) == 1
	assert not recorder.calls


def test_unbindable_port(site: Path, monkeypatch: pytest.MonkeyPatch):
	monkeypatch.setattr(cli, "run", Recorder(OSError(98, "Address already in use")))
	assert cli.main([str(site)]) == 1


# EOF
