"""
Binary dictionary (code table) format

    uint16 LE   entry count
    per entry:
        uint8   code length L in bits
        ceil(L/8) bytes, code bits MSB first, last byte zero padded
        uint8   symbol

Entries are stored in list order, which the code builder keeps sorted by ascending code length
"""

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

COUNT = struct.Struct("<H")
MAX_CODE_BITS = 255


class FormatError(ValueError):
    pass


@dataclass(frozen=True)
class CodeEntry:
    symbol: int # byte value 0-255
    code: str   # '0'/'1' characters, may be empty for a single symbol alphabet


def code_to_bytes(code: str) -> bytes:
    if not code:
        return b""
    n_bytes = (len(code) + 7) // 8
    pad_bits = n_bytes * 8 - len(code)
    return (int(code, 2) << pad_bits).to_bytes(n_bytes, "big")


def bytes_to_code(data: bytes, length: int) -> str:
    if length == 0:
        return ""
    value = int.from_bytes(data, "big") >> (len(data) * 8 - length)
    return format(value, "b").zfill(length)


def dumps(codebook: List[CodeEntry]) -> bytes:
    if len(codebook) > 256:
        raise ValueError(f"codebook has {len(codebook)} entries, at most 256 symbols exist")

    out = bytearray(COUNT.pack(len(codebook)))
    for entry in codebook:
        if not 0 <= entry.symbol <= 255:
            raise ValueError(f"symbol {entry.symbol} is not a byte value")
        if len(entry.code) > MAX_CODE_BITS:
            raise ValueError(f"code for symbol {entry.symbol} is {len(entry.code)} bits, limit is {MAX_CODE_BITS}")
        if entry.code.strip("01"):
            raise ValueError(f"code for symbol {entry.symbol} is not binary: {entry.code!r}")

        out.append(len(entry.code))
        out += code_to_bytes(entry.code)
        out.append(entry.symbol)
    return bytes(out)


def loads(data: bytes) -> List[CodeEntry]:
    if len(data) < COUNT.size:
        raise FormatError("dictionary is missing its entry count")
    (count,) = COUNT.unpack_from(data)
    if count > 256:
        raise FormatError(f"dictionary declares {count} entries, at most 256 symbols exist")

    codebook: List[CodeEntry] = []
    seen = set()
    pos = COUNT.size
    for i in range(count):
        if pos >= len(data):
            raise FormatError(f"dictionary truncated before entry {i} of {count}")
        length = data[pos]
        pos += 1

        n_bytes = (length + 7) // 8
        if pos + n_bytes + 1 > len(data): # code bytes + symbol byte
            raise FormatError(f"dictionary truncated inside entry {i} of {count}")
        code = bytes_to_code(data[pos:pos + n_bytes], length)
        pos += n_bytes
        symbol = data[pos]
        pos += 1

        if symbol in seen:
            raise FormatError(f"symbol {symbol} appears twice in dictionary")
        seen.add(symbol)
        codebook.append(CodeEntry(symbol, code))

    if pos != len(data):
        raise FormatError(f"{len(data) - pos} trailing bytes after {count} dictionary entries")
    return codebook


def write_codebook(path: Union[str, Path], codebook: List[CodeEntry]) -> None:
    data = dumps(codebook) # validated before the file is created
    with Path(path).open("wb") as f:
        f.write(data)


def read_codebook(path: Union[str, Path]) -> List[CodeEntry]:
    with Path(path).open("rb") as f:
        data = f.read()
    return loads(data)
