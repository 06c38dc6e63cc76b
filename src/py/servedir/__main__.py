import argparse
import os
import ssl
import sys
from functools import partial

from .announce import announce
from .config import HOST, LOG_LEVEL, PORT, ServeConfig
from .server import run, tlsContext
from .services.files import FileService
from .utils.logging import error, info, setLevel


def parser() -> argparse.ArgumentParser:
	"""Creates the command line parser."""
	parser = argparse.ArgumentParser(
		prog="servedir",
		description="Serves a local directory in HTTP.",
		epilog="All TLS options are required when one is provided.",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	parser.add_argument(
		"path",
		nargs="?",
		default=".",
		help="The directory to serve",
	)
	parser.add_argument(
		"-p",
		"--port",
		action="store",
		dest="port",
		type=int,
		help="Set port",
		default=PORT,
	)
	parser.add_argument(
		"--host",
		action="store",
		dest="host",
		metavar="HOST",
		help="Hostname, all interfaces with 0.0.0.0",
		default=HOST,
	)
	parser.add_argument(
		"-c",
		"--cert",
		action="store",
		dest="cert",
		metavar="FILE",
		help="TLS certificate file (enables TLS)",
	)
	parser.add_argument(
		"-k",
		"--key",
		action="store",
		dest="key",
		metavar="FILE",
		help="TLS key file (enables TLS)",
	)
	parser.add_argument(
		"--dir-listing",
		action=argparse.BooleanOptionalAction,
		dest="dirListing",
		help="Show listings for directories without an index",
		default=True,
	)
	parser.add_argument(
		"--dotfiles",
		action=argparse.BooleanOptionalAction,
		dest="dotfiles",
		help="Show and serve dotfiles",
		default=True,
	)
	parser.add_argument(
		"--cors",
		action=argparse.BooleanOptionalAction,
		dest="cors",
		help='Enable CORS via the "Access-Control-Allow-Origin" header',
		default=True,
	)
	parser.add_argument(
		"-v",
		"--verbose",
		action="store_true",
		dest="verbose",
		help="Print request level logs",
	)
	return parser


def main(args: list[str] | None = None) -> int:
	"""Runs the server until it is stopped, returning the exit status.
	Usage errors exit directly with status 2."""
	cli = parser()
	options = cli.parse_args(args)
	if bool(options.cert) != bool(options.key):
		cli.error("--key and --cert are required for TLS")
	try:
		setLevel(LOG_LEVEL or ("Info" if options.verbose else "Warning"))
	except ValueError as e:
		error(str(e), "LOGLEVEL")
		return 1
	try:
		config = ServeConfig.Create(
			options.path,
			allowListing=options.dirListing,
			allowDotfiles=options.dotfiles,
			allowCORS=options.cors,
			quiet=not options.verbose,
		)
	except OSError as e:
		error(str(e), "ROOT", Path=os.path.abspath(options.path))
		return 1
	context: ssl.SSLContext | None = None
	if options.cert:
		try:
			context = tlsContext(options.cert, options.key)
		except (OSError, ssl.SSLError) as e:
			error(f"Could not load TLS certificate: {e}", "TLS")
			return 1
	info("Serving directory", Path=str(config.root))
	try:
		run(
			FileService(config),
			host=options.host,
			port=options.port,
			ssl=context,
			onStart=partial(announce, tls=context is not None),
		)
	except OSError as e:
		error(
			f"Unable to listen on {options.host}:{options.port}: {e}",
			"HOSTPORTERR",
		)
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
