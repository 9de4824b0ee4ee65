"""Request bodies accepted by the relay endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class InitiatePaymentRequest(BaseModel):
    """Payload accepted by `POST /initiate-payment`.

    Card fields are accepted for storefront compatibility and never forwarded
    to the processor.
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    currency: str = Field(min_length=1)
    amount: str = Field(min_length=1)
    card_number: str | None = Field(default=None, alias="cardNumber")
    card_holder: str | None = Field(default=None, alias="cardHolder")
    expiry: str | None = None
    cvv: str | None = None


class CompleteOrderRequest(BaseModel):
    """Payload accepted by `POST /complete_order`."""

    order_id: str = Field(min_length=1)
    intent: str = Field(min_length=1)
    email: str | None = None


class ClientTokenRequest(BaseModel):
    customer_id: str | None = None
