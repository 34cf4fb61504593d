import struct
from typing import Iterable, Optional, Union

HEADER = struct.Struct("<I") # total bit count, little-endian uint32
MAX_BITS = (1 << 32) - 1


class UnexpectedEndOfData(ValueError):
    pass


class BitWriter:
    """
    Packs bits MSB first into a byte buffer
    getvalue() prepends the bit count header so the padding bits of the last byte are never read as data
    """

    def __init__(self):
        self.buffer = bytearray()
        self.acc = 0
        self.acc_bits = 0
        self.bit_count = 0

    def write_bit(self, bit: int) -> None:
        self._advance(1)
        self.acc = (self.acc << 1) | (1 if bit else 0)
        self.acc_bits += 1
        if self.acc_bits == 8:
            self.buffer.append(self.acc)
            self.acc = 0
            self.acc_bits = 0

    def write_bits(self, bits: Union[str, Iterable[int]]) -> None: # bits: '0'/'1' string or iterable of ints
        for bit in bits:
            self.write_bit(bit == '1' if isinstance(bit, str) else bit)

    def write_count(self, n: int) -> None:
        # Declared bits that carry no data (single symbol alphabet)
        if n < 0:
            raise ValueError("bit count must be non-negative")
        self._advance(n)

    def _advance(self, n: int) -> None:
        if self.bit_count + n > MAX_BITS:
            raise ValueError(f"payload exceeds {MAX_BITS} bits")
        self.bit_count += n

    def getvalue(self) -> bytes:
        body = bytes(self.buffer)
        if self.acc_bits != 0:
            body += bytes([(self.acc << (8 - self.acc_bits)) & 0xFF])
        return HEADER.pack(self.bit_count) + body


class BitReader:
    """
    Reads back a payload produced by BitWriter
    read_bit() returns None once the declared bit count or the buffer runs out
    """

    def __init__(self, payload: bytes):
        if len(payload) < HEADER.size:
            raise UnexpectedEndOfData(
                f"payload has {len(payload)} bytes, header needs {HEADER.size}"
            )
        (self.bit_count,) = HEADER.unpack_from(payload)
        self.data = memoryview(payload)[HEADER.size:]
        self.position = 0 # bits consumed so far

    @property
    def available_bits(self) -> int:
        return min(self.bit_count, len(self.data) * 8)

    def read_bit(self) -> Optional[int]:
        if self.position >= self.bit_count:
            return None
        byte_index, offset = divmod(self.position, 8)
        if byte_index >= len(self.data):
            return None
        self.position += 1
        return (self.data[byte_index] >> (7 - offset)) & 1
