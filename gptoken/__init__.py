from gptoken.byte_buffer import ByteBuffer
from gptoken.encoding import Encoding, for_model as encoding_for_model, for_name as get_encoding
from gptoken.errors import (
    ConfigurationError,
    RankFileError,
    TokenizerError,
    UnknownEncodingError,
    UnknownModelError,
    UnknownTokenError,
    VocabularyNotFoundError,
)
from gptoken.models import ModelType, get_tokenizer, tokenizer_for_model
from gptoken.tokenizer import Tokenizer

__version__ = "0.3.0"
