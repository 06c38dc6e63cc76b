import io
import socket
import sys
from typing import TextIO

import psutil
import qrcode

# --
# == Startup announcement
#
# Once listening, every URL the server can be reached at is printed along
# with a QR code, so that it can be opened from a phone on the same network.

ALL_INTERFACES: str = "0.0.0.0"  # nosec: B104


def listeningHosts(host: str) -> list[str]:
	"""Returns the concrete hosts the server is reachable at: the IPv4
	address of every interface when listening on all of them, or the host
	itself otherwise."""
	if host != ALL_INTERFACES:
		return [host]
	hosts: list[str] = []
	for addresses in psutil.net_if_addrs().values():
		for address in addresses:
			if address.family == socket.AF_INET and address.address not in hosts:
				hosts.append(address.address)
	return hosts


def urls(host: str, port: int, tls: bool = False) -> list[str]:
	scheme: str = "https" if tls else "http"
	return [f"{scheme}://{_}:{port}" for _ in listeningHosts(host)]


def qrText(url: str) -> str:
	"""Renders the QR code of the URL as terminal text."""
	qr = qrcode.QRCode(border=1)
	qr.add_data(url)
	qr.make(fit=True)
	out = io.StringIO()
	qr.print_ascii(out=out, invert=True)
	return out.getvalue()


def announce(
	host: str, port: int, tls: bool = False, stream: TextIO | None = None
) -> list[str]:
	"""Prints the reachable URLs with their QR codes, returning the URLs."""
	out: TextIO = stream or sys.stdout
	reachable = urls(host, port, tls)
	out.write("Access from mobile:\n")
	for url in reachable:
		out.write(f"{url}\n")
		out.write(qrText(url))
	out.flush()
	return reachable


# EOF
