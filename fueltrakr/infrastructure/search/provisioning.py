"""Idempotent creation of the search indices."""

import logging
from typing import List

from elasticsearch import ApiError, AsyncElasticsearch, TransportError

from fueltrakr.infrastructure.config.settings import ElasticsearchSettings
from fueltrakr.infrastructure.search.client import INDEX_MAPPINGS, INDEX_SETTINGS, index_name, translate_error

logger = logging.getLogger(__name__)


class IndexProvisioner:
    """Creates every known index that does not exist yet."""

    def __init__(self, client: AsyncElasticsearch, settings: ElasticsearchSettings):
        self.client = client
        self.settings = settings

    async def ensure_indices(self) -> List[str]:
        """Checks each index and creates the missing ones.

        Returns:
            Names of the indices created by this call (empty when all existed).

        Raises:
            FuelTrakrError: If the store cannot be reached or rejects a request.
        """
        created = []
        for index_type, mapping in INDEX_MAPPINGS.items():
            name = index_name(self.settings, index_type)
            try:
                if await self.client.indices.exists(index=name):
                    logger.info(f"Index already exists: {name}")
                    continue
                await self.client.indices.create(index=name, mappings=mapping, settings=INDEX_SETTINGS)
            except (ApiError, TransportError) as e:
                logger.error(f"Failed to create index {name}: {e}")
                raise translate_error(e) from e
            logger.info(f"Created index: {name}")
            created.append(name)
        return created
