"""
Heartbeats to external monitoring after a run.
"""
from typing import Iterable, List, Optional

import requests
from loguru import logger

from docker_db_dump.errors import NotificationError


class Heartbeat:
    """
    Pings the configured URLs with a GET request.
    """

    def __init__(self, success_urls: Iterable[str] = (), failure_urls: Iterable[str] = (),
                 always_urls: Iterable[str] = (), timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        """
        :param success_urls: pinged if the run succeeded
        :param failure_urls: pinged if anything failed
        :param always_urls: pinged after every run
        :param timeout: timeout of a single request in seconds
        :param session: http session, a new one by default
        """
        self.success_urls = list(success_urls)
        self.failure_urls = list(failure_urls)
        self.always_urls = list(always_urls)
        self.timeout = timeout
        self._session = session

    @property
    def session(self) -> requests.Session:
        if not self._session:
            self._session = requests.Session()
        return self._session

    def urls_for(self, succeeded: bool) -> List[str]:
        return (self.success_urls if succeeded else self.failure_urls) + self.always_urls

    def ping(self, url: str) -> None:
        """
        Deliver a single heartbeat.
        Raises NotificationError if the request failed or was not answered with 2xx.
        """
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(f'Heartbeat to {url} failed: {e}') from e
        logger.debug(f'Heartbeat sent to {url} ({response.status_code})')

    def notify(self, succeeded: bool) -> bool:
        """
        Ping every URL of the outcome.
        :param succeeded: whether the backup run succeeded
        :return: True if all heartbeats were delivered
        """
        delivered = True
        for url in self.urls_for(succeeded):
            try:
                self.ping(url)
            except NotificationError as e:
                logger.error(str(e))
                delivered = False
        return delivered
