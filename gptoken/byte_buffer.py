from __future__ import annotations


class ByteBuffer(bytes):
    """
    Immutable byte sequence used as a rank-table key and as the unit of merging.

    Equality and hashing come from ``bytes``, so a ByteBuffer and a plain ``bytes``
    object with the same content are interchangeable as dictionary keys. That lets
    the merge loop look ranks up with plain slices of a piece.
    """

    __slots__ = ()

    @classmethod
    def of(cls, data: bytes | bytearray | memoryview | str, encoding: str = "utf-8") -> ByteBuffer:
        if isinstance(data, cls):
            return data
        if isinstance(data, str):
            return cls(data.encode(encoding))
        return cls(data)

    def sub_sequence(self, start: int, end: int) -> ByteBuffer:
        "Copy of the ``[start, end)`` range."
        return ByteBuffer(bytes.__getitem__(self, slice(start, end)))

    def to_bytes(self) -> bytes:
        return bytes(self)

    def to_string(self, encoding: str = "utf-8", errors: str = "replace") -> str:
        return self.decode(encoding, errors=errors)

    def __repr__(self):
        return f"ByteBuffer({bytes.__repr__(self)})"
