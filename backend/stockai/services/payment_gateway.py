# Overview: External payment gateway collaborator (checkout sessions); Stripe and in-process implementations.

"""
Payment Gateway Adapters

WHY: Gateway-mediated checkout needs exactly two operations from the
payment provider: create a hosted checkout session and retrieve it later.
Keeping them behind a small interface lets the checkout orchestrator run
against Stripe in production and against an in-process gateway in
development and tests.

The active gateway is built once per app (create_app) from the
PAYMENT_GATEWAY setting and stored in app.extensions["payment_gateway"].
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field

import stripe
from flask import current_app


class PaymentGatewayError(Exception):
    """Raised when the payment provider rejects a call or cannot be reached."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class GatewayLineItem:
    name: str
    unit_amount_cents: int
    quantity: int


@dataclass
class GatewaySession:
    """Provider-neutral view of a checkout session."""
    id: str
    url: str | None
    payment_status: str  # "paid" | "unpaid" | "no_payment_required"
    amount_total_cents: int | None
    metadata: dict = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


class PaymentGateway:
    """Interface consumed by the checkout orchestrator."""

    def create_session(
        self,
        line_items: list[GatewayLineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> GatewaySession:
        raise NotImplementedError

    def retrieve_session(self, session_id: str) -> GatewaySession:
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    """Stripe Checkout Sessions."""

    def __init__(self, api_key: str | None, currency: str = "usd"):
        if not api_key:
            raise PaymentGatewayError("STRIPE_SECRET_KEY is not configured")
        self.api_key = api_key
        self.currency = currency

    @staticmethod
    def _to_session(obj) -> GatewaySession:
        metadata = getattr(obj, "metadata", None) or {}
        return GatewaySession(
            id=obj.id,
            url=getattr(obj, "url", None),
            payment_status=getattr(obj, "payment_status", None) or "unpaid",
            amount_total_cents=getattr(obj, "amount_total", None),
            metadata={str(k): str(metadata[k]) for k in metadata.keys()},
        )

    def create_session(self, line_items, success_url, cancel_url, metadata):
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product_data": {"name": item.name},
                            "unit_amount": item.unit_amount_cents,
                        },
                        "quantity": item.quantity,
                    }
                    for item in line_items
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            raise PaymentGatewayError("Failed to create checkout session", {"provider_error": str(e)})
        return self._to_session(session)

    def retrieve_session(self, session_id):
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise PaymentGatewayError("Failed to retrieve checkout session", {"provider_error": str(e)})
        return self._to_session(session)


class InMemoryGateway(PaymentGateway):
    """
    In-process gateway for development and tests.

    Sessions start "unpaid"; mark_paid() simulates the customer completing
    payment on the hosted page.
    """

    def __init__(self, base_url: str = "http://localhost:5173"):
        self.base_url = base_url.rstrip("/")
        self.sessions: dict[str, GatewaySession] = {}

    def create_session(self, line_items, success_url, cancel_url, metadata):
        session_id = f"cs_test_{secrets.token_hex(12)}"
        total = sum(item.unit_amount_cents * item.quantity for item in line_items)
        session = GatewaySession(
            id=session_id,
            url=f"{self.base_url}/mock-checkout/{session_id}",
            payment_status="unpaid",
            amount_total_cents=total,
            metadata=dict(metadata),
        )
        self.sessions[session_id] = session
        return session

    def retrieve_session(self, session_id):
        session = self.sessions.get(session_id)
        if session is None:
            raise PaymentGatewayError("No such checkout session", {"session_id": session_id})
        return session

    def mark_paid(self, session_id: str) -> GatewaySession:
        session = self.retrieve_session(session_id)
        session.payment_status = "paid"
        return session


def build_gateway(config) -> PaymentGateway:
    """Construct the gateway selected by PAYMENT_GATEWAY."""
    kind = (config.get("PAYMENT_GATEWAY") or "memory").lower()
    if kind == "stripe":
        return StripeGateway(config.get("STRIPE_SECRET_KEY"), config.get("PAYMENT_CURRENCY", "usd"))
    if kind == "memory":
        return InMemoryGateway(config.get("CLIENT_URL", "http://localhost:5173"))
    raise ValueError(f"Unknown PAYMENT_GATEWAY: {kind}")


def get_gateway() -> PaymentGateway:
    return current_app.extensions["payment_gateway"]
