from __future__ import annotations

ES_PARSE_ERROR = "ES_PARSE_ERROR"
ES_DOCUMENT_PARSE_ERROR = "ES_DOCUMENT_PARSE_ERROR"


class SearchParseError(Exception):
    """Upstream search document could not be turned into a response."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class SearchServiceError(Exception):
    """The search index or one of its sub-queries was unreachable."""


class InvalidSearchRequestError(Exception):
    pass


class EmbeddingError(Exception):
    pass
