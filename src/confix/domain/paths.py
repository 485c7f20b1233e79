"""OptionPath — the dotted address of one configurable value.

Paths are tuples of identifiers with tuple ordering, so iterating a sorted
collection of paths is deterministic across runs.  Dotted strings are the
human form: ``services.nginx.enable``.  A segment that itself contains a
dot (an attribute-set key such as a hostname) is rendered quoted.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True, slots=True)
class OptionPath:
    """Immutable, totally ordered option address."""

    parts: tuple[str, ...] = ()

    @classmethod
    def parse(cls, value: str | OptionPath | tuple[str, ...] | list[str]) -> OptionPath:
        """Build a path from a dotted string (or return an existing path).

        Double-quoted segments may contain dots::

            >>> OptionPath.parse('hosts."example.com".port').parts
            ('hosts', 'example.com', 'port')
        """
        if isinstance(value, OptionPath):
            return value
        if isinstance(value, (tuple, list)):
            return cls(tuple(str(p) for p in value))
        if not value:
            return cls(())
        return cls(tuple(_split_dotted(value)))

    @property
    def name(self) -> str:
        """Last segment (empty for the root path)."""
        return self.parts[-1] if self.parts else ""

    @property
    def parent(self) -> OptionPath:
        return OptionPath(self.parts[:-1])

    @property
    def is_root(self) -> bool:
        return not self.parts

    def child(self, name: str | int) -> OptionPath:
        return OptionPath((*self.parts, str(name)))

    def startswith(self, prefix: OptionPath) -> bool:
        """True if *prefix* is an ancestor of (or equal to) this path."""
        return self.parts[: len(prefix.parts)] == prefix.parts

    def relative_to(self, prefix: OptionPath) -> OptionPath:
        if not self.startswith(prefix):
            msg = f"{self} is not below {prefix}"
            raise ValueError(msg)
        return OptionPath(self.parts[len(prefix.parts) :])

    @property
    def depth(self) -> int:
        return len(self.parts)

    def __str__(self) -> str:
        return ".".join(f'"{p}"' if "." in p else p for p in self.parts)

    def __repr__(self) -> str:
        return f"OptionPath({str(self)!r})"


ROOT = OptionPath()


def _split_dotted(value: str) -> list[str]:
    parts: list[str] = []
    buf: list[str] = []
    quoted = False
    for ch in value:
        if ch == '"':
            quoted = not quoted
        elif ch == "." and not quoted:
            parts.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    if quoted:
        msg = f"Unterminated quote in option path: {value!r}"
        raise ValueError(msg)
    parts.append("".join(buf))
    if any(p == "" for p in parts):
        msg = f"Empty segment in option path: {value!r}"
        raise ValueError(msg)
    return parts
