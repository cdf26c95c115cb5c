"""
Value stringification for row fingerprints.

Stringification is purely lexical: a value is rendered the way the driver
hands it back, so ``Decimal("1.50")`` and ``Decimal("1.5")`` stay different.
Converters are looked up along the value's MRO, which lets a caller register a
converter for a base type and have it apply to subclasses.
"""

from collections.abc import Callable
from typing import Any

NULL_TOKEN = "NULL"

Converter = Callable[[Any], str]


def _binary_to_hex(value: Any) -> str:
    return bytes(value).hex()


class ValueCanonicalizer:
    """
    Per-type registry that turns column values into fingerprint text.

    Defaults:
        None -> "NULL"
        bytes / bytearray / memoryview -> lowercase hex
        anything else -> str(value)

    Example:
        >>> canonicalizer = ValueCanonicalizer()
        >>> canonicalizer.register(float, lambda v: repr(v))
        >>> canonicalizer.canonicalize(0.1)
        '0.1'
    """

    def __init__(self, converters: dict[type, Converter] | None = None):
        self._converters: dict[type, Converter] = {
            bytes: _binary_to_hex,
            bytearray: _binary_to_hex,
            memoryview: _binary_to_hex,
        }
        if converters:
            self._converters.update(converters)

    def register(self, value_type: type, converter: Converter) -> None:
        """Register (or replace) the converter used for ``value_type``."""
        self._converters[value_type] = converter

    def canonicalize(self, value: Any) -> str:
        if value is None:
            return NULL_TOKEN

        for klass in type(value).__mro__:
            converter = self._converters.get(klass)
            if converter is not None:
                return converter(value)

        return str(value)

    def __call__(self, value: Any) -> str:
        return self.canonicalize(value)
