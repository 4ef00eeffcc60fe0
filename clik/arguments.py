r"""
Clik argument descriptors and binding.

Overview
- Argument: a positional binding instruction (name, type, position) with an
  optional short description. Immutable, hashable, compared by value.
- parser(type): resolve the "parse from string" capability of a type.
- bind(arguments, tokens): turn residual string tokens into typed values.

Binding protocol
- Descriptors are walked in order; position i reads tokens[i].
- A missing token raises MissingArgumentError(name, position, type).
- A token the parser rejects raises WrongArgumentError(name, position, type, inner),
  chained from the parser's exception.
- Fail fast and all-or-nothing: the first fault aborts binding and no partial
  mapping is ever returned.
- Tokens past the last descriptor are left alone; callers may use them as
  variadic trailing arguments.

Parsers
- Any callable taking a single string works as a type (int, float, str,
  pathlib.Path, decimal.Decimal, an Enum looked up by value, or a plain function).
- bool is special-cased: only "true" and "false" are accepted. bool("false") is
  True in Python, which is never what a command line means.

Example
    >>> bind([Argument("n", int, 0)], ["5", "extra"])
    {'n': 5}
"""
import functools
import operator
import re
import typing

from .faults import FaultCode, MissingArgumentError, WrongArgumentError
from .utils import Unset, coalesce, mirror, rename, ordinal


class ArgumentType(type):
    """
    Metaclass that turns descriptors into introspectable, read-only records.

    Responsibilities
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics and rich.pretty output.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation, e.g. argument(name='n', type=<class 'int'>, ...).
            """
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate and normalize descriptor metadata in place.

    - name: non-empty string after trimming.
    - type: callable (the parser is resolved lazily through parser()); typing
      constructs such as Optional[int] or list[str] are rejected.
    - position: non-negative integer (bool rejected).
    - descr: Unset, None or a non-empty string after trimming; Unset becomes None.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    metadata["name"] = name

    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")
    elif typing.get_origin(metadata["type"]) is not None:
        raise TypeError(f"{cls.__typename__} 'type' must be a concrete type, not {metadata['type']!r}")

    if not isinstance(position := metadata["position"], int) or isinstance(position, bool):
        raise TypeError(f"{cls.__typename__} 'position' must be an integer")
    elif position < 0:
        raise ValueError(f"{cls.__typename__} 'position' cannot be negative")

    if (descr := metadata["descr"]) is None:
        descr = Unset
    if not isinstance(descr, str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


class Argument(metaclass=ArgumentType):
    """
    Positional argument descriptor: where a typed parameter comes from.

    Fields (read-only)
    - name: display name (the parameter name).
    - type: declared type; also the parser unless parser() overrides it.
    - position: 0-based index into the residual tokens.
    - descr: optional short description, shown in binding hints.
    """

    __introspectable__ = (
        "name",
        "type",
        "position",
        "descr",
    )

    def __new__(cls, name, type=str, position=0, descr=Unset):
        metadata = {
            "name": name,
            "type": type,
            "position": position,
            "descr": descr,
        }
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def typename(self):
        """
        Declared type name as shown to users ('int', 'Path', ...).
        """
        return getattr(self.type, "__name__", repr(self.type))

    def __replace__(self, **overrides):
        return type(self)(**{name: getattr(self, name) for name in type(self).__introspectable__} | overrides)

    def __eq__(self, other):
        if not isinstance(other, Argument):
            return NotImplemented
        return (self.name, self.type, self.position, self.descr) == (other.name, other.type, other.position, other.descr)

    def __hash__(self):
        return hash((self.name, self.type, self.position, self.descr))


@rename("bool")
def _parse_bool(token, /):
    match token:
        case "true":
            return True
        case "false":
            return False
    raise ValueError(f"invalid literal for bool: {token!r} (expected 'true' or 'false')")


_parsers = {
    bool: _parse_bool,
}


def parser(type, /):
    """
    Return the callable that parses a string token into 'type'.
    """
    try:
        return _parsers[type]
    except (KeyError, TypeError):
        pass
    if not callable(type):
        raise TypeError("parser() argument must be callable")
    return type


def bind(arguments, tokens, /):
    """
    Bind residual tokens to typed values.

    Parameters
    - arguments: Iterable[Argument] whose positions are exactly 0, 1, 2, ... in order.
    - tokens: Sequence[str] of residual tokens.

    Returns
    - dict[str, object]: name -> parsed value, in declaration order.

    Raises
    - MissingArgumentError: fewer tokens than descriptors.
    - WrongArgumentError: a parser raised; the parser's exception is kept as 'inner'.
    - TypeError/ValueError: malformed descriptors (not Argument, gaps in positions,
      duplicated names) or non-string tokens.
    """
    arguments = tuple(arguments)
    names = set()
    for position, argument in enumerate(arguments):
        if not isinstance(argument, Argument):
            raise TypeError("bind() first argument must be an iterable of arguments")
        if argument.position != position:
            raise ValueError("bind() argument positions must be a contiguous 0-based sequence")
        if argument.name in names:
            raise ValueError(f"bind() argument name {argument.name!r} is already in use")
        names.add(argument.name)

    tokens = tuple(tokens)
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("bind() second argument must be a sequence of strings")

    values = {}

    for argument in arguments:
        name, position, typename = argument.name, argument.position, argument.typename

        if len(tokens) <= position:
            raise MissingArgumentError(
                "argument %r of type %r not found at %s position" % (name, typename, ordinal(position + 1)),
                title="missing argument",
                code=FaultCode.MISSING_ARGUMENT,
                hint="pass a %s for %r%s" % (typename, name, f" ({argument.descr})" if argument.descr else ""),
                name=name,
                position=position,
                type=typename,
            )

        try:
            values[name] = parser(argument.type)(tokens[position])
        except Exception as exception:
            raise WrongArgumentError(
                "argument %r at %s position cannot be converted to %r: %s" % (
                    name, ordinal(position + 1), typename, exception
                ),
                title="wrong argument",
                code=FaultCode.WRONG_ARGUMENT,
                hint="use a valid %s for %r%s" % (typename, name, f" ({argument.descr})" if argument.descr else ""),
                name=name,
                position=position,
                type=typename,
                inner=exception,
                token=tokens[position],
            ) from exception

    return values


__all__ = (
    "Argument",
    "parser",
    "bind",
)

# Not part of the public API.
del ArgumentType
