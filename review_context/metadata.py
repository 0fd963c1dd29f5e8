"""Best-effort structural hints for code chunks.

Pattern heuristics only: a chunk that does not contain a typed
``function name(params): ReturnType`` signature simply gets no function metadata.
"""

import re

from review_context.models import Chunk, ChunkMetadata, FunctionMetadata

FUNCTION_SIGNATURE = re.compile(r"function\s+([a-zA-Z0-9_]+)\s*\(([^)]*)\)\s*:\s*([a-zA-Z0-9_]+)")


def extract_function_metadata(chunk_text: str) -> FunctionMetadata | None:
    """Extract the first typed function signature from a chunk.

    Args:
        chunk_text: Raw chunk text.

    Returns:
        FunctionMetadata for the first match, or None if nothing matches.
    """
    if not isinstance(chunk_text, str):
        return None

    match = FUNCTION_SIGNATURE.search(chunk_text)
    if match is None:
        return None

    name, raw_params, return_type = match.groups()
    params = [param.strip() for param in raw_params.split(",") if param.strip()]
    return FunctionMetadata(name=name, params=params, return_type=return_type)


def build_chunk_metadata(chunk: Chunk, chunk_index: int) -> ChunkMetadata:
    """Build stored metadata for a chunk.

    Args:
        chunk: Chunk attached to its source file.
        chunk_index: Positional index of the chunk within its file.

    Returns:
        ChunkMetadata with function hints filled in when a signature was found.
    """
    source = chunk.source_file
    function = extract_function_metadata(chunk.text)

    return ChunkMetadata(
        filepath=source.path if source else "",
        repo=source.repo_key if source else "",
        content=chunk.text,
        chunk_index=chunk_index,
        line_range=chunk.line_range,
        function_name=function.name if function else None,
        function_params=", ".join(function.params) if function else None,
        return_type=function.return_type if function else None,
    )
