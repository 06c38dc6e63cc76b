import sys
import traceback
from enum import Enum
from typing import NamedTuple, Any, TextIO
from .primitives import TPrimitive
from .term import Term

# Every entry is prefixed with this origin
ORIGIN: str = "servedir"


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30
	Error = 40  # A managed error, like a startup failure
	Exception = 50  # An un-managed error, always written


LOG_LEVEL_COLOR = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}


class LogEntry(NamedTuple):
	"""A structured entry: either a message or a named event (like a served
	request), with its context as `Key=value` pairs."""

	level: LogLevel
	message: str
	context: dict[str, Any]
	isEvent: bool = False
	value: Any = None
	icon: str | None = None


class LogSettings:
	"""Process-wide sink and threshold. Entries below `level` are dropped."""

	level: LogLevel = LogLevel.Info
	stream: TextIO = sys.stderr


def setLevel(level: LogLevel | str) -> LogLevel:
	"""Sets the minimum level, accepting either a `LogLevel` or its name."""
	if isinstance(level, str):
		try:
			level = LogLevel[level.capitalize()]
		except KeyError:
			raise ValueError(
				f"Unknown log level '{level}', pick one of: {', '.join(_.name for _ in LogLevel)}"
			)
	LogSettings.level = level
	return level


def setStream(stream: TextIO) -> TextIO:
	LogSettings.stream = stream
	return stream


def formatData(value: Any) -> str:
	if value is None or value == () or value == [] or value == {}:
		return "◌"
	elif isinstance(value, dict):
		return " ".join(
			f"{Term.BOLD}{k}{Term.NORMAL}={formatData(v)}"
			for k, v in value.items()
			if v is not None
		)
	elif isinstance(value, (list, tuple)):
		return ",".join(formatData(v) for v in value)
	elif isinstance(value, str):
		return repr(value) if " " in value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def send(entry: LogEntry) -> LogEntry:
	if entry.level.value < LogSettings.level.value:
		return entry
	clr: str = Term.Color(LOG_LEVEL_COLOR[entry.level])
	if entry.isEvent:
		head = f"{clr}{Term.BOLD}[{ORIGIN}] {entry.message}{Term.RESET} {formatData(entry.value)}"
	else:
		icon: str = f" {entry.icon}" if entry.icon else ""
		head = f"{clr}{Term.BOLD}[{ORIGIN}]{Term.RESET}{icon} {entry.message}"
	LogSettings.stream.write(f"{head} {formatData(entry.context)}{Term.RESET}\n")
	LogSettings.stream.flush()
	return entry


def debug(message: str, *, icon: str | None = None, **context: TPrimitive) -> LogEntry:
	return send(LogEntry(LogLevel.Debug, message, context, icon=icon))


def info(message: str, *, icon: str | None = None, **context: TPrimitive) -> LogEntry:
	return send(LogEntry(LogLevel.Info, message, context, icon=icon))


def warning(
	message: str, *, icon: str | None = None, **context: TPrimitive
) -> LogEntry:
	return send(LogEntry(LogLevel.Warning, message, context, icon=icon))


def error(message: str, code: int | str | None, **context: TPrimitive) -> LogEntry:
	"""Logs a managed error, `code` identifying its kind (like `TLS`)."""
	return send(LogEntry(LogLevel.Error, message, {"Code": code, **context}))


def event(
	event: str,
	value: Any = None,
	*,
	level: LogLevel = LogLevel.Info,
	**context: TPrimitive,
) -> LogEntry:
	return send(LogEntry(level, event, context, isEvent=True, value=value))


def exception(
	exception: BaseException,
	message: str | None = None,
) -> BaseException:
	"""Writes the exception and its traceback, regardless of the level, and
	returns it so that this can be called as `raise exception(e)`."""
	summary: str = f"[{exception.__class__.__name__}] {exception}"
	try:
		stream = LogSettings.stream
		stream.write(f"!!! EXCP {f'{message}: {summary}' if message else summary}\n")
		for frame in traceback.extract_tb(exception.__traceback__):
			stream.write(
				f"... in {frame.name:15s} at {frame.lineno or 0:4d} in {frame.filename}\n"
			)
		stream.flush()
	except Exception:  # nosec: B110
		# Logging is called from exception handlers, where it can't fail
		pass
	return exception


# EOF
