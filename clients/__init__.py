# file: clients/__init__.py
from .registry import ApiClient, LeadApiClient, ClientRegistry

__all__ = ["ApiClient", "LeadApiClient", "ClientRegistry"]
