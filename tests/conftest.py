import pytest

from gptoken.encoding import GPT2_PATTERN, Encoding
from gptoken.tokenizer import Tokenizer

EOT = "<|endoftext|>"
FIM = "<|fim|>"

# byte-level table plus a handful of merges, lowest rank merges first
MERGES = [
    b"he",       # 256
    b"ll",       # 257
    b"hell",     # 258
    b"hello",    # 259
    b" w",       # 260
    b"or",       # 261
    b" wor",     # 262
    b"ld",       # 263
    b" world",   # 264
    b"aa",       # 265
]


def make_ranks(merges=MERGES):
    ranks = {bytes([i]): i for i in range(256)}
    for i, token in enumerate(merges):
        ranks[token] = 256 + i
    return ranks


@pytest.fixture
def ranks():
    return make_ranks()


@pytest.fixture
def toy_encoding(ranks):
    return Encoding("toy", GPT2_PATTERN, {EOT: 1000, FIM: 1001}, mergeable_ranks=ranks)


@pytest.fixture
def toy_tokenizer(toy_encoding):
    return Tokenizer(toy_encoding)
