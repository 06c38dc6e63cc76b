from typing import NamedTuple
from enum import Enum
import resource


class LimitType(Enum):
	Files = resource.RLIMIT_NOFILE
	FileSize = resource.RLIMIT_FSIZE


REASONABLE_LIMITS: dict[LimitType, int] = {
	# Each connection holds a socket and possibly an open file
	LimitType.Files: 10 * 10240,
	LimitType.FileSize: int(1e12),
}


class Limit(NamedTuple):
	type: LimitType
	soft: int
	hard: int


def limit(scope: LimitType) -> Limit:
	return Limit(scope, *resource.getrlimit(scope.value))


def unlimit(
	scope: LimitType, ratio: float = 1.0, *, maximum: int | None = 0
) -> int | bool:
	"""Raises the soft limit towards the hard limit, capped to a reasonable
	maximum, returning the new soft limit or `False`."""
	lm = limit(scope)
	try:
		hard = lm.hard if lm.hard != resource.RLIM_INFINITY else lm.soft
		target = int(lm.soft + ratio * max(0, hard - lm.soft))
		# Darwin has really high limits that will lead to OverflowErrors.
		maximum = REASONABLE_LIMITS.get(scope) if maximum == 0 else maximum
		if maximum:
			target = min(maximum, target)
		target = max(target, lm.soft) if lm.soft != resource.RLIM_INFINITY else lm.soft
		resource.setrlimit(scope.value, (target, lm.hard))
		return target
	except ValueError:
		return False
	except OSError:
		return False


# EOF
