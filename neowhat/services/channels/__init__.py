"""Channel adapters for different communication platforms."""

from neowhat.services.channels.base import ChannelAdapter, SignatureVerdict
from neowhat.services.channels.whatsapp import WasenderWhatsAppAdapter, get_whatsapp_adapter

__all__ = ["ChannelAdapter", "SignatureVerdict", "WasenderWhatsAppAdapter", "get_whatsapp_adapter"]
