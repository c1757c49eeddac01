"""Item lookups."""

from __future__ import annotations

from ..models import Item
from .data_service import DataService


class ItemDataService(DataService[Item]):
    """A service to retrieve Items from the REST API."""

    link_path = "items"
    resource_type = "item"
    model = Item
