"""Pick the query mode for a user turn."""

from bai.core.schema import QueryType


def classify(raw_input: str, override: QueryType | None = None) -> QueryType:
    """
    Map user input to a query mode.

    A pinned *override* (the sticky error mode) always wins.  Otherwise input containing a question
    mark is a question and anything else asks for a command.  ``ERROR`` is never inferred from text.
    """
    if override is not None:
        return override
    if "?" in raw_input.strip():
        return QueryType.QUESTION
    return QueryType.EXECUTE
