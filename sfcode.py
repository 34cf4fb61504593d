"""
Shannon-Fano coder for stdin/stdout

How to run:
  sfcode --dict codes.bin < input.txt > input.sf
  sfcode -d --dict codes.bin < input.sf > input.txt
  sfcode --stats < input.txt > /dev/null
"""

import argparse
import sys
from typing import BinaryIO, List, Optional

import codebook as cb
import shannon_fano as sf


def print_stats(data: bytes, codebook: List[cb.CodeEntry], payload: bytes, dict_bytes: int) -> None:
    freqs = sf.symbol_frequencies(data)
    h = sf.entropy(sf.symbol_probabilities(data))
    avg = sf.mean_code_length(codebook, freqs)
    ratio = len(payload) / max(1, len(data))
    print(f"input bytes:       {len(data)}", file=sys.stderr)
    print(f"unique symbols:    {len(freqs)}", file=sys.stderr)
    print(f"entropy:           {h:.4f} bits/symbol", file=sys.stderr)
    print(f"mean code length:  {avg:.4f} bits/symbol", file=sys.stderr)
    print(f"payload bytes:     {len(payload)} (ratio {ratio:.4f})", file=sys.stderr)
    print(f"dictionary bytes:  {dict_bytes}", file=sys.stderr)


def run_encode(args, data: bytes) -> bytes:
    codebook, payload = sf.compress(data)
    cb.write_codebook(args.dict, codebook)
    if args.stats:
        print_stats(data, codebook, payload, len(cb.dumps(codebook)))
    return payload


def run_decode(args, data: bytes) -> bytes:
    codebook = cb.read_codebook(args.dict)
    return sf.decode(codebook, data)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="sfcode", description="Shannon-Fano encode or decode stdin to stdout")
    ap.add_argument("-d", "--decode", action="store_true", help="Decode stdin (default is encode)")
    ap.add_argument("--dict", type=str, default="codes.bin", help="Dictionary file written on encode, read on decode")
    ap.add_argument("--stats", action="store_true", help="Print code statistics to stderr after encoding")
    return ap


def main(argv: Optional[List[str]] = None, stdin: Optional[BinaryIO] = None, stdout: Optional[BinaryIO] = None) -> int:
    args = build_parser().parse_args(argv)
    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer

    mode = "Decoding" if args.decode else "Encoding"
    try:
        data = stdin.read()
        result = run_decode(args, data) if args.decode else run_encode(args, data)
    except (OSError, ValueError) as e:
        print(f"{mode} error: {e}", file=sys.stderr)
        return 1

    stdout.write(result)
    stdout.flush()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
