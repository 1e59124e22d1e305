"""
Shared HTTP request layer for provider clients.

Classifies every response the same way for all providers:
- transport failure, or a success status with a non-JSON body -> ProviderUnavailable
- non-success status whose body matches the provider's error shape -> ProviderLogicError
  (message passed through verbatim)
- non-success status with any other body -> ProviderUnavailable("<Provider> <status>")
- success status carrying an error payload (opt-in per provider) -> ProviderLogicError

No retries: a failed page fails the source, and the next scheduled run
retries the same window.
"""

from typing import Any, Callable, Dict, Optional
import httpx
import logging

from core.exceptions import ProviderLogicError, ProviderUnavailable

logger = logging.getLogger(__name__)

ErrorParser = Callable[[Any], Optional[str]]


def nested_error_message(payload: Any) -> Optional[str]:
    """{"error": {"message": "..."}} as used by Stripe and the Graph API"""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return None


def flat_error_message(payload: Any) -> Optional[str]:
    """{"message": "..."} as used by MailerLite"""
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return None


class ProviderHTTP:
    """
    Thin JSON client bound to one provider.

    Attributes:
        provider: Display name used in error messages ("Stripe", "Meta", ...)
        error_parser: Extracts the provider's documented error message, or None
        check_success_payload: Also run error_parser on 2xx bodies
    """

    def __init__(
        self,
        provider: str,
        client: httpx.AsyncClient,
        headers: Optional[Dict[str, str]] = None,
        error_parser: Optional[ErrorParser] = None,
        check_success_payload: bool = False
    ):
        self.provider = provider
        self.client = client
        self.headers = headers or {}
        self.error_parser = error_parser
        self.check_success_payload = check_success_payload
        self.requests_made = 0

    async def get_json(self, url: str, params: Any = None) -> Any:
        return await self._request("GET", url, params=params)

    async def post_json(self, url: str, json: Any = None, params: Any = None) -> Any:
        return await self._request("POST", url, params=params, json=json)

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        self.requests_made += 1
        logger.debug(f"{self.provider} {method} {url}")

        try:
            response = await self.client.request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderUnavailable(
                f"{self.provider} request failed",
                context={"provider": self.provider, "url": url},
                original_exception=e
            )

        payload = self._parse(response)

        if not response.is_success:
            message = self.error_parser(payload) if (self.error_parser and payload is not None) else None
            if message:
                raise ProviderLogicError(
                    message,
                    context={"provider": self.provider, "url": url, "status_code": response.status_code}
                )
            raise ProviderUnavailable(
                f"{self.provider} {response.status_code}",
                context={
                    "provider": self.provider,
                    "url": url,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]
                }
            )

        if payload is None:
            raise ProviderUnavailable(
                f"{self.provider} returned a malformed response",
                context={
                    "provider": self.provider,
                    "url": url,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]
                }
            )

        if self.check_success_payload and self.error_parser:
            message = self.error_parser(payload)
            if message:
                raise ProviderLogicError(
                    message,
                    context={"provider": self.provider, "url": url, "status_code": response.status_code}
                )

        return payload

    @staticmethod
    def _parse(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None
