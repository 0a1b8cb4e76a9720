from __future__ import annotations

import logging
import time
from typing import Callable

import requests

from .config import OAuthConfig, ServiceAccountCredential
from .errors import AuthExchangeError
from .jwt_assertion import mint_assertion

logger = logging.getLogger("VisitorSheets")

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class TokenMinter:
    """
    Service-account JWT bearer grant.

    Every call signs a fresh assertion and performs one token exchange.
    Tokens are never cached and failed exchanges are never retried.
    """

    def __init__(self, cfg: OAuthConfig, clock: Callable[[], float] = time.time) -> None:
        self.cfg = cfg
        self._clock = clock

    def assertion(self, credential: ServiceAccountCredential) -> str:
        return mint_assertion(
            credential,
            now=int(self._clock()),
            scope=self.cfg.scope,
            audience=self.cfg.token_uri,
            lifetime=self.cfg.lifetime_seconds,
        )

    def exchange(self, assertion: str) -> str:
        try:
            resp = requests.post(
                self.cfg.token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.cfg.timeout_seconds,
            )
        except requests.RequestException as e:
            raise AuthExchangeError(f"OAuth request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            logger.error(f"OAuth error: {resp.status_code} - {resp.text}")
            raise AuthExchangeError(
                f"OAuth error: {resp.status_code} - {resp.text}",
                status=resp.status_code,
                body=resp.text,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise AuthExchangeError("OAuth response is not JSON", status=resp.status_code, body=resp.text) from e
        token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthExchangeError("OAuth response has no access_token", status=resp.status_code, body=resp.text)
        return token

    def mint(self, credential: ServiceAccountCredential) -> str:
        token = self.exchange(self.assertion(credential))
        logger.info(f"Access token obtained for {credential.client_email}")
        return token
