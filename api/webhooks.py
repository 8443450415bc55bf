"""
Webhook handler for PayPal notifications
"""

from fastapi import APIRouter, Depends, HTTPException, Request

from core.dependencies import get_provider
from payments.models import PaymentProviderError
from payments.paypal_provider import PayPalProvider

router = APIRouter()

# PayPal transmission header -> verify-webhook-signature field
TRANSMISSION_HEADERS = {
    "paypal-auth-algo": "auth_algo",
    "paypal-cert-url": "cert_url",
    "paypal-transmission-id": "transmission_id",
    "paypal-transmission-sig": "transmission_sig",
    "paypal-transmission-time": "transmission_time",
}


@router.post("/webhook/paypal")
async def paypal_webhook(
    request: Request, provider: PayPalProvider = Depends(get_provider)
):
    transmission = {
        field: request.headers.get(header)
        for header, field in TRANSMISSION_HEADERS.items()
    }
    if not all(transmission.values()):
        raise HTTPException(status_code=400, detail="signature missing")

    try:
        event = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="invalid payload")

    verified = await provider.verify_webhook({**transmission, "webhook_event": event})
    if isinstance(verified, PaymentProviderError):
        raise HTTPException(status_code=502, detail=verified.error)
    if not verified:
        raise HTTPException(status_code=400, detail="Invalid signature")

    result = await provider.get_webhook_action_and_data(
        {
            "event_type": event.get("event_type"),
            "resource_type": event.get("resource_type"),
            "data": event.get("resource"),
        }
    )
    return result.model_dump(mode="json")
