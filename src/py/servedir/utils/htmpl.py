from typing import Callable, Iterable, Iterator, Union, cast
from mypy_extensions import KwArg, VarArg

# --
# HTMPL builds HTML documents as trees of nodes, serialized as a stream of
# strings. Text is escaped when serialized, never when the tree is built.

HTML_EMPTY: frozenset[str] = frozenset(("br", "hr", "img", "input", "link", "meta"))
HTML_ESCAPED = str.maketrans(
    {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#x27;"}
)

TNodeContent = Union["Node", str, int, float]
TAttributeContent = str | bool | int | float | None


def escape(text: str) -> str:
    return text.translate(HTML_ESCAPED)


class Node:
    __slots__ = ["name", "attributes", "children"]

    def __init__(
        self,
        name: str,
        children: Iterable[TNodeContent] = (),
        attributes: dict[str, TAttributeContent] | None = None,
    ):
        self.name: str = name
        self.attributes: dict[str, TAttributeContent] = attributes or {}
        self.children: list[TNodeContent] = list(children)

    def iterHTML(self) -> Iterator[str]:
        yield f"<{self.name}"
        for k, v in self.attributes.items():
            # `False` and `None` drop the attribute, `True` keeps its name only
            if v is True:
                yield f" {k}"
            elif v is not None and v is not False:
                yield f' {k}="{escape(str(v))}"'
        yield ">"
        if self.name not in HTML_EMPTY:
            for child in self.children:
                if isinstance(child, Node):
                    yield from child.iterHTML()
                else:
                    yield escape(str(child))
            yield f"</{self.name}>"

    def __str__(self) -> str:
        return "".join(self.iterHTML())


NodeFactory = Callable[
    [VarArg(TNodeContent | list[TNodeContent] | None), KwArg(TAttributeContent)],
    Node,
]


class Markup:
    """Creates nodes with `H.tag(*children, **attributes)`, where children
    can be nested in lists and `None` children are skipped. As `class` is a
    keyword, the `_` attribute stands for it."""

    def __getattr__(self, name: str) -> NodeFactory:
        if name.startswith("_"):
            raise AttributeError(name)

        def factory(
            *children: TNodeContent | list[TNodeContent] | None,
            **attributes: TAttributeContent,
        ) -> Node:
            content: list[TNodeContent] = []
            for child in children:
                if isinstance(child, (list, tuple)):
                    content += child
                elif child is not None:
                    content.append(child)
            return Node(
                name,
                content,
                {("class" if k == "_" else k): v for k, v in attributes.items()},
            )

        return cast(NodeFactory, factory)


H: Markup = Markup()


def html(*nodes: Node, doctype: str | None = "html") -> Iterator[str]:
    if doctype:
        yield f"<!DOCTYPE {doctype}>\n"
    for node in nodes:
        yield from node.iterHTML()


# EOF
