"""
PayPal Payment Provider

Maps the host's payment-session lifecycle onto PayPal orders:
- initiate / update      -> order create / patch (or re-create)
- status / authorize     -> order lookup + status mapping
- capture / cancel       -> authorization capture / void, or capture refund
- refund                 -> capture refund
- webhooks               -> signature verification + action mapping

Every lifecycle method returns either its success payload or a
PaymentProviderError. Nothing is persisted here; each call works on the
freshest order PayPal returns.
"""

import os
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from pydantic import ValidationError

from core.logging import BusinessEvents
from core.metrics import provider_errors, webhook_actions
from payments.amounts import convert_amount
from payments.exceptions import (
    ConfigurationError,
    InvalidDataUpdateError,
    MissingPaymentError,
    MultiplePurchaseUnitsError,
    RemoteCallError,
    UncapturedRefundError,
)
from payments.models import (
    AuthorizePaymentResult,
    Money,
    PaymentAction,
    PaymentProviderError,
    PaymentReference,
    PaymentSessionResponse,
    PaymentSessionStatus,
    PaypalOrder,
    PaypalOrderStatus,
    PurchaseUnit,
    SessionData,
    WebhookActionData,
    WebhookActionResult,
)
from payments.options import PayPalOptions, validate_options
from payments.paypal_client import PayPalClient
from payments.types import PayPalApi

log = structlog.get_logger(__name__)

ORDER_STATUS_MAP = {
    PaypalOrderStatus.CREATED: PaymentSessionStatus.PENDING,
    PaypalOrderStatus.SAVED: PaymentSessionStatus.REQUIRES_MORE,
    PaypalOrderStatus.APPROVED: PaymentSessionStatus.REQUIRES_MORE,
    PaypalOrderStatus.PAYER_ACTION_REQUIRED: PaymentSessionStatus.REQUIRES_MORE,
    PaypalOrderStatus.VOIDED: PaymentSessionStatus.CANCELED,
    PaypalOrderStatus.COMPLETED: PaymentSessionStatus.AUTHORIZED,
}

# PayPal webhook event_type -> provider event
WEBHOOK_EVENT_TYPES = {
    "PAYMENT.AUTHORIZATION.CREATED": "authorized",
    "PAYMENT.CAPTURE.COMPLETED": "succeeded",
    "CHECKOUT.ORDER.COMPLETED": "succeeded",
    "PAYMENT.CAPTURE.DENIED": "failed",
    "PAYMENT.CAPTURE.DECLINED": "failed",
}

# resource_type values whose resource is a payment, not an order
PAYMENT_RESOURCE_TYPES = {"capture", "authorization"}

DEFAULT_PURCHASE_UNIT_PATH = "/purchase_units/@reference_id=='default'"


def map_order_status(status: str | None) -> PaymentSessionStatus:
    """Map a PayPal order status to a session status; unknown statuses are pending."""
    try:
        return ORDER_STATUS_MAP.get(
            PaypalOrderStatus(status), PaymentSessionStatus.PENDING
        )
    except ValueError:
        return PaymentSessionStatus.PENDING


def nest_error(
    message: str, error: Exception | PaymentProviderError
) -> PaymentProviderError:
    """
    Wrap a failure in a PaymentProviderError without recording it.

    Provider-shaped errors (a PaymentProviderError from an earlier step, or a
    RemoteCallError from PayPal) keep their own message and detail nested
    under ours, separated by a line break.
    """
    code = getattr(error, "code", None) or "unknown"

    if isinstance(error, (PaymentProviderError, RemoteCallError)):
        detail = f"{error.error}{os.linesep}{error.detail or ''}"
    else:
        detail = getattr(error, "detail", None) or str(error)

    return PaymentProviderError(error=message, code=code, detail=detail)


def build_error(
    message: str, error: Exception | PaymentProviderError
) -> PaymentProviderError:
    """Normalize any failure into a PaymentProviderError, then log and count it."""
    result = nest_error(message, error)
    provider_errors.labels(code=result.code).inc()
    log.error(
        BusinessEvents.PAYMENT_FAILURE,
        error=result.error,
        code=result.code,
        detail=result.detail,
    )
    return result


def _as_order(session_data: SessionData) -> PaypalOrder:
    if isinstance(session_data, PaypalOrder):
        return session_data
    return PaypalOrder.model_validate(session_data)


def _single_purchase_unit(order: PaypalOrder) -> PurchaseUnit:
    if not order.purchase_units:
        raise MissingPaymentError(f"Order {order.id} has no purchase unit")
    if len(order.purchase_units) > 1:
        raise MultiplePurchaseUnitsError(len(order.purchase_units))
    return order.purchase_units[0]


def _first_authorization(unit: PurchaseUnit) -> PaymentReference:
    if not unit.payments.authorizations:
        raise MissingPaymentError("No authorization found on the purchase unit")
    return unit.payments.authorizations[0]


def _is_payment_resource(payload: Mapping[str, Any], body: Any) -> bool:
    resource_type = payload.get("resource_type")
    if resource_type:
        return resource_type in PAYMENT_RESOURCE_TYPES
    if str(payload.get("event_type") or "").startswith("PAYMENT."):
        return True
    return (
        isinstance(body, Mapping) and "purchase_units" not in body and "amount" in body
    )


def _read_payment_resource(body: Any, event: str | None):
    """Amount, capture id and authorization id of a capture or authorization."""
    if not isinstance(body, Mapping) or body.get("amount") is None:
        return None, None, None
    amount = Decimal(Money.model_validate(body["amount"]).value)
    resource_id = body.get("id")
    if event == "authorized":
        return amount, None, resource_id

    related = (body.get("supplementary_data") or {}).get("related_ids") or {}
    return amount, resource_id, related.get("authorization_id")


def _read_order(body: Any):
    """Amount, first capture id and first authorization id of an order."""
    order = PaypalOrder.model_validate(body)
    unit = order.purchase_units[0] if order.purchase_units else None
    if unit is None or unit.amount is None:
        return None, None, None

    payments = unit.payments
    return (
        Decimal(unit.amount.value),
        payments.captures[0].id if payments.captures else None,
        payments.authorizations[0].id if payments.authorizations else None,
    )


class PayPalProvider:
    PROVIDER = "paypal"

    def __init__(self, options: PayPalOptions, client: PayPalApi):
        self.options = options
        self.paypal = client

    async def _get_order(self, session_data: SessionData) -> PaypalOrder:
        order_id = _as_order(session_data).id
        if not order_id:
            raise MissingPaymentError("Payment session data has no PayPal order id")
        return PaypalOrder.model_validate(await self.paypal.get_order(order_id))

    async def get_payment_status(
        self, session_data: SessionData
    ) -> PaymentSessionStatus | PaymentProviderError:
        try:
            order = await self._get_order(session_data)
        except Exception as e:
            return build_error("An error occurred in get_payment_status", e)
        return map_order_status(order.status)

    async def initiate_payment(
        self,
        session_id: str,
        amount,
        currency_code: str,
        capture_immediately: bool | None = None,
    ) -> PaymentSessionResponse | PaymentProviderError:
        intent = self.options.intent
        if (
            capture_immediately is not None
            and capture_immediately != self.options.capture
        ):
            log.debug(
                "payment.intent_override_ignored",
                session_id=session_id,
                requested=capture_immediately,
                intent=intent,
            )

        try:
            order = await self.paypal.create_order(
                intent,
                [
                    {
                        "custom_id": session_id,
                        "amount": convert_amount(amount, currency_code).model_dump(),
                    }
                ],
            )
            data = PaypalOrder.model_validate(order)
        except Exception as e:
            return build_error(
                "An error occurred in initiate_payment during the creation of the PayPal payment intent",
                e,
            )

        log.info(
            BusinessEvents.PAYMENT_INITIATED,
            session_id=session_id,
            order_id=data.id,
            intent=intent,
        )
        return PaymentSessionResponse(data=data)

    async def authorize_payment(
        self, session_data: SessionData, context: Mapping[str, Any] | None = None
    ) -> AuthorizePaymentResult | PaymentProviderError:
        status = await self.get_payment_status(session_data)
        if isinstance(status, PaymentProviderError):
            # get_payment_status already logged and counted this failure
            return nest_error("An error occurred in authorize_payment", status)

        try:
            data = await self._get_order(session_data)
        except Exception as e:
            return build_error("An error occurred in authorize_payment", e)

        log.info(BusinessEvents.PAYMENT_AUTHORIZED, order_id=data.id, status=status.value)
        return AuthorizePaymentResult(status=status, data=data)

    async def cancel_payment(
        self, session_data: SessionData
    ) -> PaypalOrder | PaymentProviderError:
        try:
            order = await self._get_order(session_data)

            already_canceled = order.status == PaypalOrderStatus.VOIDED
            fully_refunded = order.status == PaypalOrderStatus.COMPLETED and bool(
                order.invoice_id
            )
            if already_canceled or fully_refunded:
                return order

            unit = _single_purchase_unit(order)
            # a captured payment cannot be voided, only refunded
            if order.is_captured:
                capture_id = unit.payments.captures[0].id
                await self.paypal.refund_payment(capture_id)
            else:
                await self.paypal.cancel_authorized_payment(
                    _first_authorization(unit).id
                )

            order = await self._get_order(order)
        except Exception as e:
            return build_error("An error occurred in cancel_payment", e)

        log.info(BusinessEvents.PAYMENT_CANCELED, order_id=order.id, status=order.status)
        return order

    async def capture_payment(
        self, session_data: SessionData
    ) -> PaypalOrder | PaymentProviderError:
        try:
            order = _as_order(session_data)
            authorization = _first_authorization(_single_purchase_unit(order))
            await self.paypal.capture_authorized_payment(authorization.id)
            order = await self._get_order(order)
        except Exception as e:
            return build_error("An error occurred in capture_payment", e)

        log.info(BusinessEvents.PAYMENT_CAPTURED, order_id=order.id, status=order.status)
        return order

    async def delete_payment(self, session_data: SessionData) -> SessionData:
        """PayPal has no notion of deleting an order, so this is a passthrough."""
        return session_data

    async def refund_payment(
        self, session_data: SessionData, refund_amount
    ) -> PaypalOrder | PaymentProviderError:
        try:
            order = _as_order(session_data)
            unit = _single_purchase_unit(order)
            if not order.is_captured:
                raise UncapturedRefundError()
            if unit.amount is None:
                raise MissingPaymentError("Purchase unit has no amount to refund in")

            capture_id = unit.payments.captures[0].id
            amount = convert_amount(refund_amount, unit.amount.currency_code)
            await self.paypal.refund_payment(
                capture_id, {"amount": amount.model_dump()}
            )
            order = await self._get_order(order)
        except Exception as e:
            return build_error("An error occurred in refund_payment", e)

        log.info(
            BusinessEvents.PAYMENT_REFUNDED,
            order_id=order.id,
            capture_id=capture_id,
            amount=amount.value,
            currency=amount.currency_code,
        )
        return order

    async def retrieve_payment(
        self, session_data: SessionData
    ) -> PaypalOrder | PaymentProviderError:
        try:
            return await self._get_order(session_data)
        except Exception as e:
            return build_error("An error occurred in retrieve_payment", e)

    async def update_payment(
        self,
        session_id: str,
        amount,
        currency_code: str,
        existing_data: SessionData,
    ) -> PaymentSessionResponse | PaymentProviderError:
        try:
            order = _as_order(existing_data)
            if not order.id:
                raise MissingPaymentError("Payment session data has no PayPal order id")
            await self.paypal.patch_order(
                order.id,
                [
                    {
                        "op": "replace",
                        "path": DEFAULT_PURCHASE_UNIT_PATH,
                        "value": {
                            "amount": convert_amount(amount, currency_code).model_dump()
                        },
                    }
                ],
            )
        except Exception as patch_error:
            # PayPal refuses amount changes once an order is approved; start over
            log.info(
                "payment.update_recreating_order",
                session_id=session_id,
                error=str(patch_error),
            )
            result = await self.initiate_payment(session_id, amount, currency_code)
            if isinstance(result, PaymentProviderError):
                return build_error("An error occurred in update_payment", patch_error)
            return result

        log.info(BusinessEvents.PAYMENT_UPDATED, session_id=session_id, order_id=order.id)
        return PaymentSessionResponse(data=order)

    async def update_payment_data(
        self, session_id: str, data: Mapping[str, Any]
    ) -> Mapping[str, Any] | PaymentProviderError:
        # the amount has to go through update_payment to be formatted and patched
        if data.get("amount") is not None:
            return build_error(
                "An error occurred in update_payment_data", InvalidDataUpdateError()
            )
        return data

    async def retrieve_order_from_authorization(
        self, authorization: PaymentReference | Mapping[str, Any]
    ) -> PaypalOrder | PaymentProviderError | None:
        try:
            if not isinstance(authorization, PaymentReference):
                authorization = PaymentReference.model_validate(authorization)
            link = next(
                (link for link in authorization.links if link.rel == "up"), None
            )
            if link is None or not link.href:
                return None

            order_id = link.href.rstrip("/").split("/")[-1]
            if not order_id:
                return None
            return PaypalOrder.model_validate(await self.paypal.get_order(order_id))
        except Exception as e:
            return build_error("An error occurred in retrieve_order_from_authorization", e)

    async def retrieve_authorization(
        self, authorization_id: str
    ) -> PaymentReference | PaymentProviderError:
        try:
            return PaymentReference.model_validate(
                await self.paypal.get_authorization_payment(authorization_id)
            )
        except Exception as e:
            return build_error("An error occurred in retrieve_authorization", e)

    async def verify_webhook(
        self, data: Mapping[str, Any]
    ) -> bool | PaymentProviderError:
        """
        Check a webhook transmission with PayPal.

        Args:
            data: transmission fields (auth_algo, cert_url, transmission_id,
                transmission_sig, transmission_time, webhook_event); a
                webhook_id given here overrides the configured one
        """
        try:
            return await self.paypal.verify_webhook(
                {"webhook_id": self.options.webhook_id, **data}
            )
        except Exception as e:
            return build_error("An error occurred in verify_webhook", e)

    async def get_webhook_action_and_data(
        self, payload: Mapping[str, Any]
    ) -> WebhookActionResult:
        """
        Translate a webhook into a host action.

        The body is read from payload["data"], or from payload["resource"]
        for a raw PayPal envelope. PAYMENT.* events carry the capture or
        authorization itself as the resource; CHECKOUT.ORDER.* events carry
        the order. The event comes from payload["event"] or is derived from
        PayPal's event_type.
        """
        event_type = payload.get("event_type")
        event = payload.get("event") or WEBHOOK_EVENT_TYPES.get(event_type)
        log.info(
            BusinessEvents.WEBHOOK_RECEIVED,
            event_type=event_type,
            provider_event=event,
        )

        body = payload.get("data") or payload.get("resource") or {}
        try:
            if _is_payment_resource(payload, body):
                amount, capture_id, authorization_id = _read_payment_resource(
                    body, event
                )
            else:
                amount, capture_id, authorization_id = _read_order(body)
        except (ValidationError, InvalidOperation) as e:
            return self._not_supported(event_type, str(e))

        if amount is None:
            return self._not_supported(event_type, "no amount")
        if not amount.is_finite():
            return self._not_supported(event_type, f"non-finite amount {amount}")

        if event == "authorized":
            action, session_id = PaymentAction.AUTHORIZED, authorization_id
        elif event == "succeeded":
            action, session_id = PaymentAction.SUCCESSFUL, capture_id
        elif event == "failed":
            action, session_id = PaymentAction.FAILED, capture_id or authorization_id
        else:
            return self._not_supported(event_type, "unhandled event")

        if not session_id:
            return self._not_supported(event_type, "no matching payment id")

        webhook_actions.labels(action=action.value).inc()
        return WebhookActionResult(
            action=action,
            data=WebhookActionData(amount=amount, session_id=session_id),
        )

    def _not_supported(self, event_type: str | None, reason: str) -> WebhookActionResult:
        log.warning("webhook.not_supported", event_type=event_type, reason=reason)
        webhook_actions.labels(action=PaymentAction.NOT_SUPPORTED.value).inc()
        return WebhookActionResult(action=PaymentAction.NOT_SUPPORTED)


def create_provider(
    options: Mapping[str, Any] | PayPalOptions, client: PayPalApi | None = None
) -> PayPalProvider:
    """
    Build a PayPalProvider from raw options.

    Raises:
        ConfigurationError: a required option is missing or invalid
    """
    result = validate_options(options)
    if not result.ok:
        raise ConfigurationError(result.errors)

    opts = result.options
    if client is None:
        client = PayPalClient(
            opts.client_id,
            opts.client_secret,
            sandbox=opts.sandbox,
            timeout=opts.timeout,
        )
    log.info("paypal.provider_created", sandbox=opts.sandbox, intent=opts.intent)
    return PayPalProvider(opts, client)
