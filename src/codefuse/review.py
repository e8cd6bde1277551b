"""Client for the remote code review service."""

from __future__ import annotations

import requests

from codefuse.config import DEFAULT_REVIEW_TIMEOUT
from codefuse.exceptions import ConfigError, ReviewError
from codefuse.logging import logger


def submit_review(
    bundle: str,
    *,
    api_key: str,
    url: str,
    timeout: float = DEFAULT_REVIEW_TIMEOUT,
) -> str:
    """Send a bundle to the review service and return its answer.

    Args:
        bundle (str): the bundle text produced by `build_bundle`
        api_key (str): bearer token for the service
        url (str): endpoint receiving the bundle
        timeout (float): request timeout in seconds

    Raises:
        ConfigError: if the API key or the URL is missing
        ReviewError: if the request fails or the service answers with an error status

    Returns:
        str: the response body
    """
    if not api_key:
        msg = "an API key is required for review (api-key or CODEFUSE_API_KEY)"
        raise ConfigError(message=msg)
    if not url:
        msg = "a review URL is required for review (review-url or CODEFUSE_REVIEW_URL)"
        raise ConfigError(message=msg)

    logger.info("Submitting bundle for review", url=url, chars=len(bundle))
    try:
        resp = requests.post(
            url,
            json={"content": bundle},
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise ReviewError(message=f"review request failed: {e}") from e

    if not resp.ok:
        logger.warning("Review service returned an error", status=resp.status_code)
        raise ReviewError(
            message=f"review service rejected the bundle: {resp.text.strip()[:200]}",
            status_code=resp.status_code,
        )
    return resp.text
