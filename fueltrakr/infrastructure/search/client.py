"""Elasticsearch client factory, index naming and mappings."""

import logging
from typing import Any, Dict, Union

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from fueltrakr.domain.errors import FuelTrakrError, HttpStatusFailure, TransportFailure
from fueltrakr.infrastructure.config.settings import ElasticsearchSettings

logger = logging.getLogger(__name__)

USERS = "users"
FUEL_ENTRIES = "fuel_entries"

INDEX_SETTINGS = {"number_of_shards": 1, "number_of_replicas": 1}

INDEX_MAPPINGS: Dict[str, Dict[str, Any]] = {
    USERS: {
        "properties": {
            "id": {"type": "keyword"},
            "email": {"type": "keyword"},
            "name": {"type": "text"},
            "role": {"type": "keyword"},
            "created_at": {"type": "date"},
            "updated_at": {"type": "date"},
        }
    },
    FUEL_ENTRIES: {
        "properties": {
            "id": {"type": "keyword"},
            "user_id": {"type": "keyword"},
            "user_name": {"type": "keyword"},
            "stock_number": {"type": "keyword"},
            "vin": {"type": "keyword"},
            "gallons": {"type": "float"},
            "price_per_gallon": {"type": "float"},
            "total_amount": {"type": "float"},
            "odometer": {"type": "integer"},
            "fuel_type": {"type": "keyword"},
            "location": {"type": "text"},
            "latitude": {"type": "float"},
            "longitude": {"type": "float"},
            "geo_location": {"type": "geo_point"},
            "receipt_photo": {"type": "keyword"},
            "vin_photo": {"type": "keyword"},
            "notes": {"type": "text"},
            "timestamp": {"type": "date"},
            "created_at": {"type": "date"},
        }
    },
}


def index_name(settings: ElasticsearchSettings, index_type: str) -> str:
    """``{prefix}_{index_type}``, e.g. ``fueltrakr_users``."""
    if index_type not in INDEX_MAPPINGS:
        raise ValueError(f"Unknown index type: {index_type}")
    return f"{settings.index_prefix}_{index_type}"


def create_search_client(settings: ElasticsearchSettings) -> AsyncElasticsearch:
    """Builds an async client from settings.

    A cloud id wins over the node URL; an API key wins over basic auth.
    """
    kwargs: Dict[str, Any] = {}
    if settings.api_key:
        kwargs["api_key"] = settings.api_key
    elif settings.username or settings.cloud_id:
        kwargs["basic_auth"] = (settings.username or "elastic", settings.password or "")

    if settings.cloud_id:
        logger.info("Connecting to Elastic Cloud deployment")
        return AsyncElasticsearch(cloud_id=settings.cloud_id, **kwargs)

    logger.info(f"Connecting to Elasticsearch at {settings.node}")
    return AsyncElasticsearch(hosts=[settings.node], **kwargs)


def is_not_found(error: ApiError) -> bool:
    return error.meta.status == 404


def translate_error(error: Union[ApiError, TransportError]) -> FuelTrakrError:
    """Maps client exceptions onto the FuelTrakr taxonomy."""
    if isinstance(error, ApiError):
        return HttpStatusFailure(error.meta.status, str(error.body or error.message))
    return TransportFailure(f"Network error: {error}")
