"""
Retryable Session to download content from the MTGJSON CDN
"""
import datetime
import functools
from typing import Optional, Union

import requests
import requests.adapters
import requests_cache
import urllib3

from . import constants
from .mtgjson_config import MtgjsonSqlConfig


def retryable_session(
    retries: int = 8,
    timeout: Optional[float] = None,
) -> Union[requests.Session, requests_cache.CachedSession]:
    """
    Session with requests to allow for re-attempts at downloading missing data
    :param retries: How many retries to attempt
    :param timeout: Seconds per request (defaults to the configured timeout)
    :return: Session that does the downloading
    """
    session: Union[requests.Session, requests_cache.CachedSession]

    if MtgjsonSqlConfig().use_cache:
        session = requests_cache.CachedSession(
            cache_name=str(constants.HTTP_CACHE_PATH.joinpath("cdn")),
            expire_after=datetime.timedelta(hours=1),
            stale_if_error=True,
        )
    else:
        session = requests.Session()

    retry = urllib3.util.retry.Retry(
        total=retries,
        read=retries,
        connect=retries,
        backoff_factor=0.3,
        status_forcelist=(500, 502, 504),
    )

    adapter = requests.adapters.HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.request = functools.partial(  # type: ignore
        session.request, timeout=timeout or MtgjsonSqlConfig().timeout
    )

    session.headers.update(
        {"User-Agent": f"mtgjson-sql/{MtgjsonSqlConfig().version} (+https://mtgjson.com)"}
    )
    return session
