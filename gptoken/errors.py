class TokenizerError(Exception):
    """Base class for every error raised by gptoken."""


class ConfigurationError(TokenizerError, ValueError):
    """The encoding, model or vocabulary resource could not be resolved or loaded."""


class UnknownEncodingError(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(f"Unknown encoding: {name}")
        self.name = name


class UnknownModelError(ConfigurationError):
    def __init__(self, model_name: str):
        super().__init__(f"Model `{model_name}` not found")
        self.model_name = model_name


class RankFileError(ConfigurationError):
    """A line of a rank file could not be parsed. The whole load is rejected."""

    def __init__(self, source: str, line_no: int, reason: str):
        super().__init__(f"{source}:{line_no}: {reason}")
        self.source = source
        self.line_no = line_no
        self.reason = reason


class VocabularyNotFoundError(ConfigurationError):
    def __init__(self, filename: str, searched: list[str]):
        super().__init__(
            f"Rank file {filename!r} not found (searched: {', '.join(searched) or 'nothing'}). "
            f"Run `gptoken fetch` or set GPTOKEN_DATA_DIR."
        )
        self.filename = filename
        self.searched = searched


class UnsupportedFeatureError(ConfigurationError):
    pass


class UnknownTokenError(TokenizerError, KeyError):
    """A token id is neither a known rank nor a known special token."""

    def __init__(self, token: int):
        super().__init__(token)
        self.token = token

    def __str__(self):
        return f"Unknown token id: {self.token}"
