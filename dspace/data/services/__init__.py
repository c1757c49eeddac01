"""Resource clients."""

from .bitstream_data_service import BitstreamDataService
from .bundle_data_service import BundleDataService
from .data_service import DataService
from .item_data_service import ItemDataService

__all__ = [
    "DataService",
    "ItemDataService",
    "BundleDataService",
    "BitstreamDataService",
]
