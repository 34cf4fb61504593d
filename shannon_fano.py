import math
from collections import Counter
from fractions import Fraction
from typing import Dict, Iterable, List, Optional, Tuple, Union

from bitio import BitReader, BitWriter, UnexpectedEndOfData
from codebook import CodeEntry, FormatError

__all__ = [
    "CodeEntry", "FormatError", "InvalidCode", "UnexpectedEndOfData", "TrieNode",
    "symbol_frequencies", "symbol_probabilities", "build_codebook", "build_codebook_for",
    "code_map", "is_prefix_free", "build_trie", "encode", "decode", "compress",
    "entropy", "mean_code_length",
]

Probability = Union[Fraction, float]


class InvalidCode(ValueError):
    pass


# Frequency model

def symbol_frequencies(data: bytes) -> Dict[int, int]:
    return dict(Counter(data))

def symbol_probabilities(data: bytes) -> List[Tuple[int, Fraction]]:
    """
    Empirical probability per distinct byte, most probable first
    Equal probabilities are ordered by ascending symbol value
    """
    total = len(data)
    if total == 0:
        return []
    counts = symbol_frequencies(data)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [(symbol, Fraction(count, total)) for symbol, count in ordered]


# Code builder

def code_length(p: Fraction) -> int:
    # ceil(-log2(p)) without floating point: smallest L with p * 2^L >= 1
    length = 0
    while p * (1 << length) < 1:
        length += 1
    return length

def expand_binary(value: Fraction, length: int) -> str: # first `length` fractional bits of value in [0, 1)
    bits = []
    frac = value
    for _ in range(length):
        frac *= 2
        bit = min(int(frac), 1)
        bits.append('1' if bit else '0')
        frac -= bit
    return ''.join(bits)

def build_codebook(probabilities: Iterable[Tuple[int, Probability]]) -> List[CodeEntry]:
    """
    Shannon-Fano construction over (symbol, probability) pairs sorted by descending probability

    Each symbol gets the first ceil(-log2(p)) bits of the binary expansion of the cumulative
    probability of the symbols before it. The result is sorted by ascending code length,
    entries of equal length keep their probability order.
    """
    codebook: List[CodeEntry] = []
    cumulative = Fraction(0)
    for symbol, p in probabilities:
        p = Fraction(p)
        if not 0 < p <= 1:
            raise ValueError(f"probability of symbol {symbol} must be in (0, 1], got {p}")
        length = code_length(p)
        codebook.append(CodeEntry(symbol, expand_binary(cumulative, length)))
        cumulative += p

    if len(codebook) > 1 and any(not entry.code for entry in codebook):
        raise ValueError(f"zero-length code in an alphabet of {len(codebook)} symbols")

    codebook.sort(key=lambda entry: len(entry.code))
    return codebook

def build_codebook_for(data: bytes) -> List[CodeEntry]:
    return build_codebook(symbol_probabilities(data))

def code_map(codebook: List[CodeEntry]) -> Dict[int, str]:
    return {entry.symbol: entry.code for entry in codebook}

def is_prefix_free(codebook: List[CodeEntry]) -> bool:
    # After sorting, a code that is a prefix of another sorts directly before one of its extensions
    codes = sorted(entry.code for entry in codebook)
    return all(not b.startswith(a) for a, b in zip(codes, codes[1:]))


# Decode trie

class TrieNode:
    __slots__ = ('left', 'right', 'symbol', 'is_terminal')

    def __init__(self):
        self.left: Optional['TrieNode'] = None  # bit 0
        self.right: Optional['TrieNode'] = None # bit 1
        self.symbol = 0
        self.is_terminal = False # symbol 0 is a real symbol, so the flag is separate

    def child(self, bit: int) -> Optional['TrieNode']:
        return self.right if bit else self.left

def build_trie(codebook: List[CodeEntry]) -> TrieNode:
    root = TrieNode()
    for entry in codebook:
        node = root
        for ch in entry.code:
            if node.is_terminal:
                raise FormatError(f"code {entry.code!r} for symbol {entry.symbol} extends another code")
            nxt = node.child(ch == '1')
            if nxt is None:
                nxt = TrieNode()
                if ch == '1':
                    node.right = nxt
                else:
                    node.left = nxt
            node = nxt

        if node.is_terminal or node.left is not None or node.right is not None:
            raise FormatError(f"code {entry.code!r} for symbol {entry.symbol} collides with another code")
        node.symbol = entry.symbol
        node.is_terminal = True
    return root


# Encoder / decoder

def encode(data: bytes, codebook: List[CodeEntry]) -> bytes:
    writer = BitWriter()
    if not data or not codebook:
        return writer.getvalue()

    if len(codebook) == 1:
        # No data bits, the header carries the repeat count
        symbol = codebook[0].symbol
        for i, b in enumerate(data):
            if b != symbol:
                raise ValueError(f"symbol {b} at position {i} has no code")
        writer.write_count(len(data))
        return writer.getvalue()

    codes = code_map(codebook)
    for i, b in enumerate(data):
        code = codes.get(b)
        if code is None:
            raise ValueError(f"symbol {b} at position {i} has no code")
        writer.write_bits(code)
    return writer.getvalue()

def decode(codebook: List[CodeEntry], payload: bytes) -> bytes:
    reader = BitReader(payload)
    total_bits = reader.bit_count

    if not codebook:
        if total_bits:
            raise InvalidCode(f"payload declares {total_bits} bits but the dictionary is empty")
        return b""
    if len(codebook) == 1:
        return bytes([codebook[0].symbol]) * total_bits

    root = build_trie(codebook)
    decoded = bytearray()
    node = root
    for _ in range(total_bits):
        bit = reader.read_bit()
        if bit is None:
            raise UnexpectedEndOfData(
                f"payload declares {total_bits} bits but holds only {reader.available_bits}"
            )
        nxt = node.child(bit)
        if nxt is None:
            raise InvalidCode(f"no code continues with bit {bit} at bit offset {reader.position - 1}")
        node = nxt
        if node.is_terminal:
            decoded.append(node.symbol)
            node = root

    if node is not root:
        raise UnexpectedEndOfData("payload ends in the middle of a code")
    return bytes(decoded)

def compress(data: bytes) -> Tuple[List[CodeEntry], bytes]:
    codebook = build_codebook_for(data)
    return codebook, encode(data, codebook)


# Statistics

def entropy(probabilities: Iterable[Tuple[int, Probability]]) -> float: # bits per symbol
    return -sum(float(p) * math.log2(float(p)) for _, p in probabilities if p > 0)

def mean_code_length(codebook: List[CodeEntry], frequencies: Dict[int, int]) -> float:
    total = sum(frequencies.values())
    if total == 0:
        return 0.0
    codes = code_map(codebook)
    return sum(count * len(codes[symbol]) for symbol, count in frequencies.items()) / total
