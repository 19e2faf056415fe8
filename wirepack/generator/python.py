"""Python code generator for wirepack schemas."""

from jinja2 import Environment, PackageLoader

from wirepack.proto.types import FIXED_TYPES, Direction

from .types import Schema, TypeRef

env = Environment(
    loader=PackageLoader("wirepack.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("python.py.j2")

# Map wire types to Python type annotations
PRIMITIVE_TYPE_MAP = {
    **{name: "float" if name.startswith("f") else "int" for name in FIXED_TYPES},
    "bool": "bool",
    "varint": "int",
    "varlong": "int",
    "string": "str",
}


def _annotation(t: TypeRef, externs: frozenset[str]) -> str:
    """Map a type reference to a Python type annotation."""
    if t.name == "sequence":
        return f"list[{_annotation(t.args[0], externs)}]"
    if t.name == "optional":
        return f"_Optional[{_annotation(t.args[0], externs)}]"
    if t.name == "map":
        return f"dict[{_annotation(t.args[0], externs)}, {_annotation(t.args[1], externs)}]"
    if t.name in externs:
        return "_Any"
    return PRIMITIVE_TYPE_MAP.get(t.name, t.name)


def _interfaces(direction: Direction) -> str:
    bases = []
    if direction.can_decode:
        bases.append("_Decodable")
    if direction.can_encode:
        bases.append("_Encodable")
    return ", ".join(bases)


def render(schema: Schema, runtime_import: str = "wirepack") -> str:
    """Render a schema definition to Python source code."""
    externs = frozenset(e.name for e in schema.externs)
    return template.render(
        schema=schema,
        schema_json=schema.to_json(indent=2),
        annotation=lambda t: _annotation(t, externs),
        interfaces=_interfaces,
        class_names=schema.class_names(),
        runtime_import=runtime_import,
        BLANK_LINE="",
    )
