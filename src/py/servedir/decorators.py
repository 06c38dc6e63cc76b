from typing import ClassVar, Union, Callable, TypeVar

T = TypeVar("T")


class Marks:
    """Names of the attributes that decorators set on service methods."""

    ON: ClassVar[str] = "_servedir_on"
    ON_PRIORITY: ClassVar[str] = "_servedir_on_priority"


def on(
    priority: int = 0, **methods: Union[str, list[str], tuple[str, ...]]
) -> Callable[[T], T]:
    """The @on decorator marks a service method as the handler of the HTTP
    methods and URI patterns given as keyword arguments, where several
    methods can be joined with `_`:

    >    @on(GET_HEAD="/{path:any}")
    >    def read(self, request, path):
    >        return request.respond(...)

    The decorated method takes the `request` and the arguments extracted
    from the pattern, and returns a response. The `ANY` method matches the
    methods that have no other handler."""

    def decorator(function: T) -> T:
        marked: list[tuple[str, str]] = getattr(function, Marks.ON, [])
        for names, urls in methods.items():
            for method in names.upper().split("_"):
                marked += [(method, _) for _ in ((urls,) if isinstance(urls, str) else urls)]
        setattr(function, Marks.ON, marked)
        setattr(function, Marks.ON_PRIORITY, priority)
        return function

    return decorator


# EOF
