from __future__ import annotations

import argparse
import multiprocessing as mp
import os
import sys
import time
from typing import Optional

import numpy as np
import requests
from tqdm import tqdm

from gptoken import encoding as encodings
from gptoken.encoding import Encoding
from gptoken.errors import TokenizerError
from gptoken.load import cache_dir, load_rank_file
from gptoken.models import get_tokenizer
from gptoken.tokenizer import Tokenizer, token_dtype

ENCODINGS_BASE_URL = "https://openaipublic.blob.core.windows.net/encodings"
DOWNLOAD_CHUNK_SIZE = 1024 * 64
NUM_WORKERS = min(8, os.cpu_count() or 1)

# one per worker process
_TOKENIZER: Optional[Tokenizer] = None
_ALLOWED_SPECIAL = frozenset()


def init_worker(encoding: Encoding, allowed_special) -> None:
    global _TOKENIZER, _ALLOWED_SPECIAL
    _TOKENIZER = Tokenizer(encoding)
    _ALLOWED_SPECIAL = allowed_special


def tokenize_chunk(args):
    idx, path = args
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return idx, _TOKENIZER.encode_to_numpy(text, _ALLOWED_SPECIAL)


def tokenize_files(
    paths: list[str],
    encoding: str | Encoding,
    allowed_special=frozenset(),
    num_workers: int = NUM_WORKERS,
) -> np.ndarray:
    """
    Encode every file in a process pool and concatenate the ids in input order.

    ``encoding`` is a built-in encoding name or an Encoding; a custom Encoding is
    pickled into each worker.
    """
    if isinstance(encoding, str):
        encoding = encodings.for_name(encoding)
    tasks = list(enumerate(paths))
    if not tasks:
        return np.array([], dtype=token_dtype(encoding.n_vocab))
    results: list[Optional[np.ndarray]] = [None] * len(tasks)

    ctx = mp.get_context("spawn")
    with ctx.Pool(
        processes=max(1, min(num_workers, len(tasks))),
        initializer=init_worker,
        initargs=(encoding, allowed_special),
    ) as pool:
        for idx, token_ids in tqdm(
            pool.imap_unordered(tokenize_chunk, tasks),
            total=len(tasks),
            unit=" files",
            desc="Tokenizing",
        ):
            results[idx] = token_ids

    return np.concatenate(results)


def fetch_rank_file(filename: str, dest_dir: Optional[str] = None, base_url: str = ENCODINGS_BASE_URL) -> str:
    dest_dir = dest_dir or str(cache_dir())
    os.makedirs(dest_dir, exist_ok=True)
    dest = os.path.join(dest_dir, filename)
    tmp = dest + ".part"

    with requests.get(f"{base_url}/{filename}", stream=True, timeout=60) as resp:
        resp.raise_for_status()
        total = int(resp.headers.get("content-length", 0)) or None
        with open(tmp, "wb") as f, tqdm(total=total, unit="B", unit_scale=True, desc=filename) as tq:
            for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                f.write(chunk)
                tq.update(len(chunk))

    # reject a truncated or corrupt download before it becomes visible
    try:
        load_rank_file(tmp)
    except TokenizerError:
        os.remove(tmp)
        raise
    os.replace(tmp, dest)
    return dest


def _resolve_tokenizer(args) -> Tokenizer:
    if args.model:
        return get_tokenizer(encodings.encoding_name_for_model(args.model))
    return get_tokenizer(args.encoding)


def _allowed_special(args):
    return "all" if args.allow_special else frozenset()


def cmd_encode(args) -> None:
    tokenizer = _resolve_tokenizer(args)
    text = args.text if args.text is not None else sys.stdin.read()
    print(tokenizer.encode(text, _allowed_special(args)))


def cmd_decode(args) -> None:
    tokenizer = _resolve_tokenizer(args)
    print(tokenizer.decode(args.ids), end="")


def cmd_count(args) -> None:
    tokenizer = _resolve_tokenizer(args)
    total = 0
    for path in args.files:
        with open(path, "r", encoding="utf-8") as f:
            n = tokenizer.count(f.read(), _allowed_special(args))
        total += n
        print(f"{n}\t{path}")
    if len(args.files) > 1:
        print(f"{total}\ttotal")


def cmd_tokenize(args) -> None:
    encoding = encodings.for_model(args.model) if args.model else encodings.for_name(args.encoding)

    t = time.time()
    token_ids = tokenize_files(args.files, encoding, _allowed_special(args), args.workers)
    np.save(args.output, token_ids)
    print(f"Tokenization completed in {time.time() - t:.2f} seconds.")
    print(f"{len(token_ids)} tokens ({token_ids.dtype}) saved to {args.output}")


def cmd_fetch(args) -> None:
    if args.names:
        filenames = sorted({encodings.for_name(name).rank_file for name in args.names})
    else:
        filenames = encodings.RANK_FILES
    for filename in filenames:
        path = fetch_rank_file(filename, args.dest)
        print(f"Saved {filename} to {path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gptoken", description="BPE token ids and counts for OpenAI-style vocabularies")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_vocab_args(p, special=True):
        group = p.add_mutually_exclusive_group()
        group.add_argument("--encoding", "-e", default="cl100k_base", help="encoding name (default: cl100k_base)")
        group.add_argument("--model", "-m", help="model name, resolved to its encoding")
        if special:
            p.add_argument("--allow-special", action="store_true", help="treat special-token literals as special tokens")

    p = sub.add_parser("encode", help="print the token ids of TEXT (or stdin)")
    add_vocab_args(p)
    p.add_argument("text", nargs="?")
    p.set_defaults(func=cmd_encode)

    p = sub.add_parser("decode", help="print the text of token ids")
    add_vocab_args(p, special=False)
    p.add_argument("ids", nargs="+", type=int)
    p.set_defaults(func=cmd_decode)

    p = sub.add_parser("count", help="print token counts of files")
    add_vocab_args(p)
    p.add_argument("files", nargs="+")
    p.set_defaults(func=cmd_count)

    p = sub.add_parser("tokenize", help="encode files into a .npy array of token ids")
    add_vocab_args(p)
    p.add_argument("files", nargs="+")
    p.add_argument("--output", "-o", required=True)
    p.add_argument("--workers", "-w", type=int, default=NUM_WORKERS, help="number of worker processes")
    p.set_defaults(func=cmd_tokenize)

    p = sub.add_parser("fetch", help="download rank files into the cache directory")
    p.add_argument("names", nargs="*", help="encodings to fetch (default: all)")
    p.add_argument("--dest", help=f"target directory (default: {cache_dir()})")
    p.set_defaults(func=cmd_fetch)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except TokenizerError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
