from __future__ import annotations

import base64
import binascii
import logging
import os
import time
from collections.abc import Iterable, Mapping
from pathlib import Path

from gptoken.byte_buffer import ByteBuffer
from gptoken.errors import RankFileError, VocabularyNotFoundError

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "GPTOKEN_DATA_DIR"
PACKAGE_DATA_DIR = Path(__file__).parent / "data"


def cache_dir() -> Path:
    xdg = os.environ.get("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / "gptoken"


def search_dirs() -> list[Path]:
    """Directories searched for a rank file, in priority order."""
    dirs = []
    env_dir = os.environ.get(DATA_DIR_ENV)
    if env_dir:
        dirs.append(Path(env_dir))
    dirs.append(PACKAGE_DATA_DIR)
    dirs.append(cache_dir())
    return dirs


def resolve_rank_file(filename: str | os.PathLike) -> Path:
    path = Path(filename)
    if path.is_file():
        return path
    searched = []
    for directory in search_dirs():
        candidate = directory / path.name
        if candidate.is_file():
            return candidate
        searched.append(str(directory))
    raise VocabularyNotFoundError(str(filename), searched)


def parse_rank_lines(lines: Iterable[str], source: str = "<memory>") -> dict[ByteBuffer, int]:
    """
    Parse ``<base64 bytes> <rank>`` lines into a rank table.

    Blank lines are skipped. Any malformed line rejects the whole input, so the
    caller never sees a partial table.
    """
    ranks: dict[ByteBuffer, int] = {}
    for line_no, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        if not line:
            continue
        token, sep, rank_str = line.partition(" ")
        if not sep:
            raise RankFileError(source, line_no, "missing separator")
        try:
            token_bytes = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError) as e:
            raise RankFileError(source, line_no, f"bad base64 {token!r}") from e
        if not (rank_str.isascii() and rank_str.isdigit()):
            raise RankFileError(source, line_no, f"bad rank {rank_str!r}")
        ranks[ByteBuffer(token_bytes)] = int(rank_str)
    return ranks


def load_rank_file(path: str | os.PathLike) -> dict[ByteBuffer, int]:
    start_time = time.perf_counter()
    with open(path, "r", encoding="utf-8") as f:
        ranks = parse_rank_lines(f, source=str(path))
    logger.debug("Loaded %d ranks from %s in %.2f seconds", len(ranks), path, time.perf_counter() - start_time)
    return ranks


def dump_rank_file(ranks: Mapping[bytes, int], path: str | os.PathLike) -> None:
    with open(path, "w", encoding="utf-8") as f:
        for token, rank in sorted(ranks.items(), key=lambda kv: kv[1]):
            f.write(f"{base64.b64encode(token).decode('ascii')} {rank}\n")
