"""
The PayPal capability set the provider depends on.

PayPalClient implements it against the REST API; tests substitute an
AsyncMock with the same methods.
"""

from typing import Any, Protocol


class PayPalApi(Protocol):
    async def create_order(
        self, intent: str, purchase_units: list[dict[str, Any]]
    ) -> dict[str, Any]: ...

    async def get_order(self, order_id: str) -> dict[str, Any]: ...

    async def patch_order(
        self, order_id: str, operations: list[dict[str, Any]]
    ) -> None: ...

    async def capture_authorized_payment(
        self, authorization_id: str
    ) -> dict[str, Any]: ...

    async def cancel_authorized_payment(self, authorization_id: str) -> None: ...

    async def refund_payment(
        self, capture_id: str, body: dict[str, Any] | None = None
    ) -> dict[str, Any]: ...

    async def get_authorization_payment(
        self, authorization_id: str
    ) -> dict[str, Any]: ...

    async def verify_webhook(self, data: dict[str, Any]) -> bool: ...
