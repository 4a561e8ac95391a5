import io

from .indent import Indentation, Default, Custom, DEFAULT
from .engine import format_stream


__version__ = "0.1"


def format(text: str, indentation: Indentation = DEFAULT) -> str:
    """Format a nu string; see `format_stream` for the streaming version."""
    source = io.BytesIO(text.encode("utf-8"))
    sink = io.BytesIO()
    try:
        format_stream(source, sink, indentation)
    except OSError as e:
        # In-memory buffers don't fail
        raise AssertionError(f"Formatting in memory failed: {e}") from e
    return sink.getvalue().decode("utf-8")
