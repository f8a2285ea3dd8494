"""Fuel entry documents in the search index.

Indexed documents use the accounting field names (``gallons``,
``total_amount``, ``odometer``) rather than the API's camelCase entry
fields; ``document_from_entry`` converts between the two.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from fueltrakr.domain.constants import DEFAULT_SEARCH_LIMIT
from fueltrakr.domain.models.fuel import FuelEntry
from fueltrakr.infrastructure.config.settings import ElasticsearchSettings
from fueltrakr.infrastructure.search.client import FUEL_ENTRIES, index_name, is_not_found, translate_error

logger = logging.getLogger(__name__)

DEFAULT_FUEL_TYPE = "gasoline"


@dataclass(frozen=True)
class FuelEntrySearchParams:
    """Filters for ``FuelEntryIndex.search``; unset fields are ignored."""
    user_id: Optional[str] = None
    stock_number: Optional[str] = None
    vin: Optional[str] = None
    fuel_type: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    limit: int = DEFAULT_SEARCH_LIMIT
    offset: int = 0

    def to_query(self) -> Dict[str, Any]:
        must: List[Dict[str, Any]] = []
        for field_name in ("user_id", "stock_number", "vin", "fuel_type"):
            value = getattr(self, field_name)
            if value:
                must.append({"term": {field_name: value}})

        date_range = _range(self.start_date, self.end_date)
        if date_range:
            must.append({"range": {"timestamp": date_range}})
        amount_range = _range(self.min_amount, self.max_amount)
        if amount_range:
            must.append({"range": {"total_amount": amount_range}})

        return {"bool": {"must": must}} if must else {"match_all": {}}


def _range(lower: Any, upper: Any) -> Dict[str, Any]:
    bounds = {}
    if lower is not None:
        bounds["gte"] = lower
    if upper is not None:
        bounds["lte"] = upper
    return bounds


def document_from_entry(entry: FuelEntry, fuel_type: str = DEFAULT_FUEL_TYPE) -> Dict[str, Any]:
    """Index document for an accepted fuel entry, keyed by the entry id."""
    document: Dict[str, Any] = {
        "id": entry.id,
        "user_id": entry.user_id,
        "user_name": entry.user_name,
        "stock_number": entry.stock_number,
        "vin": entry.vin,
        "gallons": entry.fuel_amount,
        "price_per_gallon": round(entry.fuel_cost / entry.fuel_amount, 3) if entry.fuel_amount else 0.0,
        "total_amount": entry.fuel_cost,
        "odometer": int(entry.mileage),
        "fuel_type": fuel_type,
        "location": entry.location.address if entry.location and entry.location.address else "",
        "receipt_photo": entry.receipt_photo,
        "vin_photo": entry.vin_photo,
        "notes": entry.notes,
        "timestamp": entry.timestamp.isoformat(),
    }
    if entry.location:
        document["latitude"] = entry.location.latitude
        document["longitude"] = entry.location.longitude
    return document


def _sources(response: Any) -> List[Dict[str, Any]]:
    return [hit["_source"] for hit in response["hits"]["hits"]]


class FuelEntryIndex:
    """CRUD and search over the ``fuel_entries`` index.

    Every method raises ``FuelTrakrError`` when the store fails; lookups
    of a missing document return ``None``/``False`` instead.
    """

    def __init__(self, client: AsyncElasticsearch, settings: ElasticsearchSettings):
        self.client = client
        self.index = index_name(settings, FUEL_ENTRIES)

    async def create_entry(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Indexes ``document`` and returns it.

        The document keeps its own ``id`` if it has one, so re-indexing an
        entry overwrites it; otherwise a fresh uuid is assigned.
        """
        entry = {
            "id": str(uuid.uuid4()),
            **document,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        body = dict(entry)
        if entry.get("latitude") is not None and entry.get("longitude") is not None:
            body["geo_location"] = {"lat": entry["latitude"], "lon": entry["longitude"]}
        try:
            await self.client.index(index=self.index, id=entry["id"], document=body, refresh="wait_for")
        except (ApiError, TransportError) as e:
            raise translate_error(e) from e
        logger.debug(f"Indexed fuel entry {entry['id']}")
        return entry

    async def get_entry(self, entry_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = await self.client.get(index=self.index, id=entry_id)
        except ApiError as e:
            if is_not_found(e):
                return None
            raise translate_error(e) from e
        except TransportError as e:
            raise translate_error(e) from e
        return response["_source"]

    async def _search(self, **body: Any) -> Any:
        try:
            return await self.client.search(index=self.index, **body)
        except (ApiError, TransportError) as e:
            logger.error(f"Search on {self.index} failed: {e}")
            raise translate_error(e) from e

    async def entries_for_user(self, user_id: str, limit: int = DEFAULT_SEARCH_LIMIT) -> List[Dict[str, Any]]:
        response = await self._search(
            query={"term": {"user_id": user_id}}, sort=[{"timestamp": "desc"}], size=limit,
        )
        return _sources(response)

    async def all_entries(self, limit: int = 1000) -> List[Dict[str, Any]]:
        response = await self._search(query={"match_all": {}}, sort=[{"timestamp": "desc"}], size=limit)
        return _sources(response)

    async def search(self, params: FuelEntrySearchParams) -> List[Dict[str, Any]]:
        response = await self._search(
            query=params.to_query(),
            sort=[{"timestamp": "desc"}],
            size=params.limit,
            from_=params.offset,
        )
        return _sources(response)

    async def entries_for_stock_number(self, stock_number: str) -> List[Dict[str, Any]]:
        response = await self._search(query={"term": {"stock_number": stock_number}}, sort=[{"timestamp": "desc"}])
        return _sources(response)

    async def delete_entry(self, entry_id: str) -> bool:
        try:
            await self.client.delete(index=self.index, id=entry_id, refresh="wait_for")
        except ApiError as e:
            if is_not_found(e):
                return False
            raise translate_error(e) from e
        except TransportError as e:
            raise translate_error(e) from e
        return True

    async def delete_entries_for_user(self, user_id: str) -> int:
        """Removes every entry of ``user_id``; returns how many were deleted."""
        try:
            response = await self.client.delete_by_query(
                index=self.index, query={"term": {"user_id": user_id}}, refresh=True,
            )
        except (ApiError, TransportError) as e:
            raise translate_error(e) from e
        return response.get("deleted", 0) or 0

    async def user_stats(self, user_id: str) -> Dict[str, float]:
        """Entry count, gallon and dollar totals, and average price for one user."""
        response = await self._search(
            query={"term": {"user_id": user_id}},
            aggs={
                "total_gallons": {"sum": {"field": "gallons"}},
                "total_amount": {"sum": {"field": "total_amount"}},
                "avg_price": {"avg": {"field": "price_per_gallon"}},
            },
            size=0,
        )
        aggregations = response.get("aggregations") or {}
        total = response["hits"].get("total") or {}

        def value(name: str) -> float:
            return (aggregations.get(name) or {}).get("value") or 0

        return {
            "total_entries": total.get("value", 0) if isinstance(total, dict) else int(total),
            "total_gallons": value("total_gallons"),
            "total_amount": value("total_amount"),
            "average_price_per_gallon": value("avg_price"),
        }
