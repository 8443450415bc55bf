"""
PayPal REST Client

Thin asynchronous wrapper over the PayPal Orders v2 and Payments v2 APIs:
- OAuth2 client-credentials token, cached until shortly before expiry
- Order create / get / patch
- Authorization capture / void / lookup
- Capture refund
- Webhook signature verification

Calls are made with requests in the threadpool so the event loop is never
blocked. Failures surface as RemoteCallError with PayPal's error body
unpacked into (error, code, detail).
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import requests
import structlog
import tenacity
from starlette.concurrency import run_in_threadpool

from payments.exceptions import RemoteCallError

SANDBOX_BASE = "https://api-m.sandbox.paypal.com"
LIVE_BASE = "https://api-m.paypal.com"

# refresh the token this long before PayPal says it expires
TOKEN_EXPIRY_MARGIN = timedelta(seconds=60)

log = structlog.get_logger(__name__)


class PayPalClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        sandbox: bool = True,
        timeout: float = 30.0,
    ):
        self.base = SANDBOX_BASE if sandbox else LIVE_BASE
        self.client = client_id
        self.secret = client_secret
        self.timeout = timeout
        self._token_cache: tuple[str, datetime] | None = None

    @tenacity.retry(
        stop=tenacity.stop_after_attempt(3),
        wait=tenacity.wait_exponential(multiplier=1, min=1, max=8),
        retry=tenacity.retry_if_exception_type(
            (requests.ConnectionError, requests.Timeout)
        ),
        reraise=True,
    )
    def _fetch_token(self) -> tuple[str, int]:
        r = requests.post(
            f"{self.base}/v1/oauth2/token",
            auth=(self.client, self.secret),
            data={"grant_type": "client_credentials"},
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )
        if r.status_code >= 400:
            raise RemoteCallError.from_response(r)
        body = r.json()
        return body["access_token"], int(body.get("expires_in", 300))

    def _token(self) -> str:
        if self._token_cache and self._token_cache[1] > datetime.now(UTC):
            return self._token_cache[0]

        try:
            token, expires_in = self._fetch_token()
        except requests.RequestException as e:
            raise RemoteCallError(
                "Failed to obtain PayPal access token",
                code="network_error",
                detail=str(e),
            ) from e

        expires_at = datetime.now(UTC) + timedelta(seconds=expires_in)
        self._token_cache = (token, expires_at - TOKEN_EXPIRY_MARGIN)
        log.debug("paypal.token_refreshed", expires_in=expires_in)
        return token

    def _request(
        self, method: str, path: str, body: Any = None
    ) -> dict[str, Any] | None:
        headers = {
            "Authorization": f"Bearer {self._token()}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Prefer": "return=representation",
        }

        try:
            r = requests.request(
                method,
                f"{self.base}{path}",
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            log.error("paypal.request_failed", method=method, path=path, error=str(e))
            raise RemoteCallError(
                f"PayPal request {method} {path} failed",
                code="network_error",
                detail=str(e),
            ) from e

        if r.status_code >= 400:
            error = RemoteCallError.from_response(r)
            log.warning(
                "paypal.request_rejected",
                method=method,
                path=path,
                status_code=r.status_code,
                code=error.code,
            )
            raise error

        if r.status_code == 204 or not r.content:
            return None
        return r.json()

    async def _call(self, method: str, path: str, body: Any = None):
        return await run_in_threadpool(self._request, method, path, body)

    async def create_order(
        self, intent: str, purchase_units: list[dict[str, Any]]
    ) -> dict[str, Any]:
        return await self._call(
            "POST",
            "/v2/checkout/orders",
            {"intent": intent, "purchase_units": purchase_units},
        )

    async def get_order(self, order_id: str) -> dict[str, Any]:
        return await self._call("GET", f"/v2/checkout/orders/{order_id}")

    async def patch_order(
        self, order_id: str, operations: list[dict[str, Any]]
    ) -> None:
        await self._call("PATCH", f"/v2/checkout/orders/{order_id}", operations)

    async def capture_authorized_payment(
        self, authorization_id: str
    ) -> dict[str, Any]:
        return await self._call(
            "POST", f"/v2/payments/authorizations/{authorization_id}/capture", {}
        )

    async def cancel_authorized_payment(self, authorization_id: str) -> None:
        await self._call(
            "POST", f"/v2/payments/authorizations/{authorization_id}/void"
        )

    async def refund_payment(
        self, capture_id: str, body: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self._call(
            "POST", f"/v2/payments/captures/{capture_id}/refund", body or {}
        )

    async def get_authorization_payment(
        self, authorization_id: str
    ) -> dict[str, Any]:
        return await self._call(
            "GET", f"/v2/payments/authorizations/{authorization_id}"
        )

    async def verify_webhook(self, data: dict[str, Any]) -> bool:
        """Ask PayPal to check a webhook transmission signature."""
        result = await self._call(
            "POST", "/v1/notifications/verify-webhook-signature", data
        )
        return (result or {}).get("verification_status") == "SUCCESS"
