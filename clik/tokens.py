"""
Clik line tokenizer.

Rules
- Split on the space character, except inside a double-quoted span.
- A '"' toggles quoted mode and is dropped from the emitted token; there is no
  escape for a literal quote.
- Zero-length segments are dropped, so repeated spaces collapse and an empty
  quoted span ('""') yields nothing.
- An unterminated quote keeps quoted mode on to the end of the line; this is not
  an error.
- Only ' ' separates tokens. Tabs and other whitespace are token content, except
  for one trailing line terminator ("\\n" or "\\r\\n") which is stripped first.

Examples
    >>> tokenize('help')
    ['help']
    >>> tokenize('"help" "cmd"')
    ['help', 'cmd']
    >>> tokenize('say "hello  world"  twice')
    ['say', 'hello  world', 'twice']
"""


def tokenize(line, /):
    """
    Split a raw input line into word tokens honoring double quotes.
    """
    if not isinstance(line, str):
        raise TypeError("tokenize() argument must be a string")

    if line.endswith("\r\n"):
        line = line[:-2]
    elif line.endswith("\n"):
        line = line[:-1]

    tokens = []
    token = []
    quoted = False

    for char in line:
        if char == '"':
            quoted = not quoted
        elif char == " " and not quoted:
            if token:
                tokens.append("".join(token))
            token.clear()
        else:
            token.append(char)

    if token:
        tokens.append("".join(token))

    return tokens


__all__ = (
    "tokenize",
)
