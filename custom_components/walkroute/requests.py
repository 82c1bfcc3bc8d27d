"""
Low-level HTTP request library for routing and geocoding backends.
This module handles all HTTP requests with automatic retry logic and proper error handling.
"""
import asyncio
import logging
import aiohttp

from .const import REQUEST_ATTEMPTS, REQUEST_TIMEOUT, USER_AGENT


_LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": USER_AGENT,
}


class ApiResponseError(Exception):
    """Exception raised when a backend answers with a non-200 status."""
    def __init__(self, status: int, body):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {body}")


async def check_availability(url: str, timeout: int = 15) -> bool:
    """
    Check if a backend is reachable by sending a HEAD request.

    Any answer below 500 counts as reachable: routing servers commonly
    return 400 for a bare base URL.

    Args:
        url: Base URL of the backend
        timeout: Timeout in seconds for the HEAD request

    Returns:
        True if the backend answered, False otherwise
    """
    try:
        timeout_config = aiohttp.ClientTimeout(total=timeout)
        session = aiohttp.ClientSession(timeout=timeout_config, headers=DEFAULT_HEADERS)

        try:
            async with session.head(url) as response:
                if response.status >= 500:
                    _LOGGER.warning("%s is not reachable (status %s)", url, response.status)
                    return False
                return True
        finally:
            await session.close()

    except (asyncio.TimeoutError, TimeoutError):
        _LOGGER.warning("Timeout while checking %s", url)
        return False
    except aiohttp.ClientError as e:
        _LOGGER.error("Error while checking availability of %s: %s", url, e)
        return False


async def make_request(
    url: str,
    params: dict = None,
    headers: dict = None,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
):
    """
    Make a GET request with automatic retry on timeout.

    Args:
        url: Target URL for the request
        params: URL query parameters (optional)
        headers: Extra HTTP headers merged over DEFAULT_HEADERS (optional)
        timeout: Base timeout in seconds (multiplied by attempt number for each retry)
        max_attempts: Maximum number of retry attempts

    Returns:
        Parsed JSON response

    Raises:
        asyncio.TimeoutError: If all retry attempts timeout
        ApiResponseError: If the backend answers with a non-200 status
        ValueError: If response has unexpected content type
        aiohttp.ClientError: For other network errors
    """
    request_headers = dict(DEFAULT_HEADERS)
    if headers:
        request_headers.update(headers)

    for attempt in range(max_attempts):
        try:
            # Timeout grows with each attempt
            timeout_config = aiohttp.ClientTimeout(total=timeout * (attempt + 1))
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                async with session.get(url, headers=request_headers, params=params) as response:
                    return await _process_response(response, url)

        except (asyncio.TimeoutError, TimeoutError):
            if attempt < max_attempts - 1:
                _LOGGER.debug("Timeout on request to %s (attempt %s), retrying", url, attempt + 1)
                continue
            _LOGGER.warning("Timeout on request to %s after %s attempts", url, max_attempts)
            raise

    return None


async def _process_response(response, url: str):
    """
    Process HTTP response and extract JSON data.

    Args:
        response: aiohttp response object
        url: Request URL (for logging)

    Returns:
        Parsed JSON response

    Raises:
        ApiResponseError: For non-200 responses (body parsed as JSON when possible)
        ValueError: If a 200 response is not JSON
    """
    content_type = response.headers.get('Content-Type', '')
    is_json = 'json' in content_type

    if response.status == 200:
        if is_json:
            return await response.json(content_type=None)
        text = await response.text()
        _LOGGER.warning(
            "Unexpected content type in successful response: %s from %s",
            content_type, url
        )
        raise ValueError(f"Expected JSON but got {content_type}: {text[:200]}")

    if is_json:
        body = await response.json(content_type=None)
    else:
        body = (await response.text())[:200]
        _LOGGER.warning(
            "Received non-JSON error response from %s: status %s, content-type: %s",
            url, response.status, content_type
        )
    raise ApiResponseError(response.status, body)
