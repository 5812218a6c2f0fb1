import logging

from .errors import TransportError
from .models import Job, RequestOutcome
from .transport import Transport
from .utils import now

logger = logging.getLogger(__name__)


def fetch(
    transport: Transport,
    job: Job,
    method: str = "GET",
    timeout_ms: int = 1000,
    suppress_body: bool = False,
) -> RequestOutcome:
    """
    Perform one timed request and return its outcome.

    Never raises for a failed request: transport errors and unexpected
    exceptions become an outcome with `status=None`.
    """
    start = now()
    try:
        status, body = transport.perform(
            job.url,
            method=method,
            body=job.body,
            timeout_ms=timeout_ms,
            suppress_body=suppress_body,
        )
    except TransportError as e:
        elapsed = now() - start
        logger.warning(f"[#{job.index}] Transport error after {elapsed:.3f}s: {e}")
        return RequestOutcome(job.url, None, elapsed, error=e.reason)
    except Exception as e:
        elapsed = now() - start
        logger.error(f"[#{job.index}] Unexpected error fetching {job.url}: {e}")
        return RequestOutcome(job.url, None, elapsed, error=str(e))

    elapsed = now() - start
    logger.debug(f"[#{job.index}] {job.url} -> {status} in {elapsed:.3f}s")
    return RequestOutcome(job.url, status, elapsed, body=body)
