"""Query string parsing.

``QueryParams`` keeps every value of a repeated key; ``collapse()``
turns it into the plain dict handlers see as ``request.query``::

    QueryParams("a=1&a=2&b=3").collapse()  ->  {"a": ["1", "2"], "b": "3"}
"""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl, quote

# Characters kept when percent-encoding a raw query string; existing escapes survive
QUERY_SAFE = "/?:@!$&'()*+,;=%"


def _parse(query_string: str) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    # errors="replace" keeps a bad percent escape from raising
    for key, value in parse_qsl(query_string, keep_blank_values=True, errors="replace"):
        if key:
            grouped.setdefault(key, []).append(value)
    return grouped


class QueryParams(Mapping[str, str]):
    """Read-only multi-value view of a query string.

    Indexing gives the first value of a key; ``get_list`` gives them
    all. Keys iterate in first-seen order. Pairs with an empty key are
    dropped and blank values are kept as ``""``.
    """

    __slots__ = ("_raw", "_values")

    def __init__(self, query_string: str | bytes = "") -> None:
        if isinstance(query_string, bytes):
            # Raw UTF-8 bytes are escaped so parse_qsl decodes them as UTF-8
            query_string = quote(query_string, safe=QUERY_SAFE)
        raw = query_string.removeprefix("?")
        self._raw = raw
        self._values = _parse(raw)

    def __getitem__(self, key: str) -> str:
        return self._values[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __repr__(self) -> str:
        return f"QueryParams({dict(self.items())!r})"

    def get_list(self, key: str) -> list[str]:
        return list(self._values.get(key, ()))

    def collapse(self) -> dict[str, str | list[str]]:
        """One value stays a string; a repeated key becomes a list, in order."""
        return {
            key: values[0] if len(values) == 1 else list(values)
            for key, values in self._values.items()
        }

    @property
    def raw(self) -> str:
        """The query string as received, without a leading ``?``."""
        return self._raw
