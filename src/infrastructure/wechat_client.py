from __future__ import annotations

import random
import time
from typing import Any, Mapping, Optional

import requests

from src.config.settings import REQUEST_TIMEOUT, WECHAT_BASE_URL, Settings
from src.logging_config import get_logger

logger = get_logger("infrastructure.wechat")

# errcode -1: provider busy, worth another try.
_RETRIABLE_ERRCODES = {-1}


class IdentityProviderError(RuntimeError):
    """Raised when the WeChat login endpoint rejects a code or cannot be reached.

    ``errcode`` is set when WeChat answered with an error payload; it is ``None``
    for transport failures.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errcode: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errcode = errcode


class WeChatSessionClient:
    """Exchanges a mini-program login code for the caller's ``openid``.

    Features:
    - Credentials from settings (``WECHAT_APPID`` / ``WECHAT_SECRET``).
    - Configurable timeout, retry count and exponential backoff with jitter.
    - Retries on 5xx responses, network errors and WeChat's "system busy" code.
    """

    def __init__(
        self,
        appid: str,
        secret: str,
        base_url: str = WECHAT_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
    ) -> None:
        if not appid or not secret:
            raise ValueError("WeChat appid and secret are required")
        self.appid = appid
        self.secret = secret
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.max_retries = int(max_retries)
        self.backoff_factor = float(backoff_factor)
        self._session = requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "WeChatSessionClient":
        if not settings.wechat_appid or not settings.wechat_secret:
            raise RuntimeError("WECHAT_APPID and WECHAT_SECRET must be set")
        return cls(
            appid=settings.wechat_appid,
            secret=settings.wechat_secret,
            base_url=settings.wechat_base_url,
            timeout=settings.request_timeout,
        )

    def code_to_session(self, code: str) -> str:
        """Return the ``openid`` behind ``code``.

        Raises IdentityProviderError when WeChat rejects the code, answers
        without an ``openid``, or keeps failing after the retries.
        """
        payload = self._get(
            "sns/jscode2session",
            {
                "appid": self.appid,
                "secret": self.secret,
                "js_code": code,
                "grant_type": "authorization_code",
            },
        )
        openid = payload.get("openid")
        if not openid:
            raise IdentityProviderError("WeChat response did not include an openid")
        return str(openid)

    def _get(self, path: str, params: Mapping[str, Any]) -> Mapping[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        attempt = 0
        last_error: Optional[Exception] = None

        while attempt <= self.max_retries:
            try:
                resp = self._session.request(method="GET", url=url, params=params, timeout=self.timeout)
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc
                retry_after = self._compute_sleep_seconds(attempt)
                logger.warning(
                    "WeChatSessionClient GET %s exception: %s. Retrying in %.2fs (attempt %d/%d)",
                    url,
                    type(exc).__name__,
                    retry_after,
                    attempt + 1,
                    self.max_retries,
                )
                attempt += 1
                if attempt > self.max_retries:
                    break
                time.sleep(retry_after)
                continue

            if 500 <= resp.status_code < 600:
                retry_after = self._compute_sleep_seconds(attempt)
                logger.warning(
                    "WeChatSessionClient GET %s failed with %s. Retrying in %.2fs (attempt %d/%d)",
                    url,
                    resp.status_code,
                    retry_after,
                    attempt + 1,
                    self.max_retries,
                )
                attempt += 1
                if attempt > self.max_retries:
                    break
                time.sleep(retry_after)
                continue

            if not 200 <= resp.status_code < 300:
                raise IdentityProviderError(
                    f"WeChat error {resp.status_code}: {resp.text[:200]}",
                    status_code=resp.status_code,
                )

            # WeChat answers JSON with a text/plain content type, so decode regardless.
            try:
                payload = resp.json()
            except ValueError as exc:
                raise IdentityProviderError(
                    f"WeChat returned a non-JSON body: {resp.text[:200]}",
                    status_code=resp.status_code,
                ) from exc
            if not isinstance(payload, Mapping):
                raise IdentityProviderError("WeChat returned an unexpected payload")

            errcode = payload.get("errcode")
            if errcode:
                if errcode in _RETRIABLE_ERRCODES and attempt < self.max_retries:
                    retry_after = self._compute_sleep_seconds(attempt)
                    logger.warning(
                        "WeChatSessionClient GET %s busy (errcode %s). Retrying in %.2fs",
                        url,
                        errcode,
                        retry_after,
                    )
                    attempt += 1
                    time.sleep(retry_after)
                    continue
                raise IdentityProviderError(
                    f"WeChat login failed: {payload.get('errmsg', '')}",
                    status_code=resp.status_code,
                    errcode=int(errcode),
                )
            return payload

        if last_error is not None:
            raise IdentityProviderError(f"Request failed after retries: {last_error}")
        raise IdentityProviderError("Request failed after retries")

    def _compute_sleep_seconds(self, attempt: int) -> float:
        """Exponential backoff: backoff_factor * (2**attempt) + jitter."""
        base = self.backoff_factor * float(2**attempt)
        return base + random.uniform(0.0, 0.1)
