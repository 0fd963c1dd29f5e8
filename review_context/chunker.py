"""Size/overlap text chunking for embedding generation.

Splits file text recursively on paragraph, line and word boundaries, then merges
the pieces into windows of at most ``max_size`` characters where consecutive
windows share up to ``overlap`` characters. Every chunk is an exact slice of the
input so its line range can be recovered from newline counts.
"""

from review_context.models import Chunk, SourceFile

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200

# Tried in order; the empty separator means a hard cut at max_size
SEPARATORS = ["\n\n", "\n", " ", ""]

Span = tuple[int, int]


def split_text(
    text: str,
    max_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
    source_file: SourceFile | None = None,
) -> list[Chunk]:
    """Split text into overlapping chunks with 1-based line ranges.

    Args:
        text: Text to split.
        max_size: Maximum chunk length in characters.
        overlap: Maximum number of characters shared by consecutive chunks.
        source_file: File the text belongs to, attached to every chunk.

    Returns:
        Chunks in positional order. Empty for empty text.

    Raises:
        ValueError: If the size/overlap policy is invalid.
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")
    if overlap < 0:
        raise ValueError(f"overlap must not be negative, got {overlap}")
    if overlap >= max_size:
        raise ValueError(f"overlap ({overlap}) must be smaller than max_size ({max_size})")

    if not text:
        return []

    pieces = _split_spans(text, 0, len(text), SEPARATORS, max_size)
    windows = _merge_spans(pieces, max_size, overlap)

    chunks: list[Chunk] = []
    line = 1
    scanned = 0
    for start, end in windows:
        window = text[start:end]
        if not window.strip():
            continue

        # Window starts only move forward, so newlines are counted once
        line += text.count("\n", scanned, start)
        scanned = start

        # A trailing newline terminates the last line rather than opening a new one
        body = window[:-1] if window.endswith("\n") else window
        chunks.append(
            Chunk(
                text=window,
                line_from=line,
                line_to=line + body.count("\n"),
                source_file=source_file,
                start_offset=start,
            )
        )

    return chunks


def chunk_source_file(
    source_file: SourceFile,
    max_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[Chunk]:
    """Split a source file's content into chunks attached to that file."""
    return split_text(source_file.content, max_size=max_size, overlap=overlap, source_file=source_file)


def _split_spans(text: str, start: int, end: int, separators: list[str], max_size: int) -> list[Span]:
    """Recursively split ``text[start:end]`` into contiguous spans no longer than max_size.

    Separators stay attached to the end of the span they terminate, so the
    spans concatenate back to the original text.
    """
    if end - start <= max_size:
        return [(start, end)]

    for index, separator in enumerate(separators):
        if separator == "":
            return [(pos, min(pos + max_size, end)) for pos in range(start, end, max_size)]
        if text.find(separator, start, end) != -1:
            break

    finer = separators[index + 1 :]
    spans: list[Span] = []
    pos = start
    while pos < end:
        hit = text.find(separator, pos, end)
        stop = end if hit == -1 else hit + len(separator)
        if stop - pos <= max_size:
            spans.append((pos, stop))
        else:
            spans.extend(_split_spans(text, pos, stop, finer, max_size))
        pos = stop

    return spans


def _merge_spans(spans: list[Span], max_size: int, overlap: int) -> list[Span]:
    """Merge contiguous spans into windows, carrying trailing spans forward as overlap."""
    windows: list[Span] = []
    current: list[Span] = []
    total = 0

    for start, end in spans:
        length = end - start
        if current and total + length > max_size:
            windows.append((current[0][0], current[-1][1]))
            # Keep only the tail that fits in the overlap and leaves room for this span
            while current and (total > overlap or total + length > max_size):
                dropped_start, dropped_end = current.pop(0)
                total -= dropped_end - dropped_start

        current.append((start, end))
        total += length

    if current:
        windows.append((current[0][0], current[-1][1]))

    return windows
