"""WhatsApp Business webhook payload models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class WhatsAppProfile(_Payload):
    name: str = ""


class WhatsAppContact(_Payload):
    profile: Optional[WhatsAppProfile] = None
    wa_id: str = ""


class WhatsAppMetadata(_Payload):
    display_phone_number: str = ""
    phone_number_id: str = ""


class WhatsAppText(_Payload):
    body: str = ""


class WhatsAppMessageContext(_Payload):
    from_: str = Field(default="", alias="from")
    id: str = ""


class WhatsAppMessage(_Payload):
    context: Optional[WhatsAppMessageContext] = None
    from_: str = Field(default="", alias="from")
    id: str = ""
    timestamp: str = ""
    type: str = ""
    text: Optional[WhatsAppText] = None


class WhatsAppStatus(_Payload):
    id: str = ""
    status: str = ""
    timestamp: str = ""
    recipient_id: str = ""


class WhatsAppChangeValue(_Payload):
    messaging_product: str = ""
    metadata: Optional[WhatsAppMetadata] = None
    contacts: list[WhatsAppContact] = Field(default_factory=list)
    messages: list[WhatsAppMessage] = Field(default_factory=list)
    statuses: list[WhatsAppStatus] = Field(default_factory=list)


class WhatsAppChange(_Payload):
    value: Optional[WhatsAppChangeValue] = None
    field: str = ""


class WhatsAppEntry(_Payload):
    id: str
    changes: list[WhatsAppChange] = Field(default_factory=list)


class WhatsAppWebhookPayload(_Payload):
    object: str
    entry: list[WhatsAppEntry]


class WhatsAppMessageData(BaseModel):
    """Flattened view of the first message in a webhook payload."""

    message_id: str
    from_number: str
    timestamp: str
    type: str
    text: Optional[str] = None
    profile_name: Optional[str] = None
    business_account_id: Optional[str] = None
    display_phone_number: Optional[str] = None
    phone_number_id: Optional[str] = None


class WebhookAck(BaseModel):
    status: str = "received"
    processed: int = 0
