import resource
from collections.abc import Generator
from contextlib import contextmanager

from pdf_indexer.logging.logger import Log


@contextmanager
def raised_memory_limit(limit_bytes: int) -> Generator[None, None, None]:
    """Raise the soft address-space limit to limit_bytes for the duration of the block.

    The limit is only ever raised, never lowered, and the previous soft limit is
    restored on exit.
    """
    soft, hard = resource.getrlimit(resource.RLIMIT_AS)
    raised = (
        soft != resource.RLIM_INFINITY
        and soft < limit_bytes
        and (hard == resource.RLIM_INFINITY or limit_bytes <= hard)
    )
    if raised:
        resource.setrlimit(resource.RLIMIT_AS, (limit_bytes, hard))
        Log.debug(f"Memory limit raised from {soft} to {limit_bytes} bytes")
    try:
        yield
    finally:
        if raised:
            resource.setrlimit(resource.RLIMIT_AS, (soft, hard))
