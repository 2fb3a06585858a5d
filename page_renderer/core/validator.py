"""
Load outcome validation.

Turns the aggregate `FINISHED` outcome of a page load into a verdict: return
normally when the page may proceed to readiness detection, raise the matching
`RenderJobError` otherwise.
"""
from page_renderer.components.page_host.base import LoadFailure, LoadOutcome, LoadOutcomeKind
from page_renderer.core.exceptions import CrashedError, LoadFailedError, TimedOutError
from page_renderer.core.logger import get_logger

logger = get_logger(__name__)

# net::ERR_ABORTED; reported when a navigation is superseded, e.g. by a client redirect.
IGNORABLE_ERROR_CODES = frozenset({-3})


def is_ignorable_failure(failure: LoadFailure) -> bool:
    """Sub-frame failures and aborted navigations do not fail the job."""
    return not failure.is_main_frame or failure.error_code in IGNORABLE_ERROR_CODES


def validate_result(url: str, outcome: LoadOutcome) -> None:
    """
    Validates the outcome of loading `url`.

    Raises:
        LoadFailedError: The main frame failed to load.
        CrashedError: The renderer crashed.
        TimedOutError: The page never signaled completion before the deadline.
    """
    if outcome.kind is LoadOutcomeKind.DID_FINISH_LOAD:
        return
    if outcome.kind is LoadOutcomeKind.DID_FAIL_LOAD:
        failure = outcome.failure
        if failure is not None and is_ignorable_failure(failure):
            logger.info(f"Ignoring load failure for {url}: {failure.error_code} {failure.error_description}")
            return
        description = failure.error_description if failure else "unknown error"
        raise LoadFailedError(url, f"Failed to load page: {description}", context=outcome)
    if outcome.kind is LoadOutcomeKind.CRASHED:
        raise CrashedError(url, "Renderer crashed while loading page", context=outcome)
    if outcome.kind is LoadOutcomeKind.TIMEOUT:
        raise TimedOutError(url, "Page did not finish loading before the deadline", context=outcome)
    raise LoadFailedError(url, f"Unexpected load outcome '{outcome.kind}'", context=outcome)
