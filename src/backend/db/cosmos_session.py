"""
Cosmos DB access for Ballotbox.

A single async client is created on first use and shared by the process.
It signs requests with the account key from AZURE_COSMOS_CONNECTION_STRING
(local emulator) or, when no connection string is set, with
DefaultAzureCredential against AZURE_COSMOS_ENDPOINT.

Repositories only talk to Cosmos through the item helpers at the bottom of
this module, which keeps SDK objects out of the repository layer and gives
tests one place to patch.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from azure.core import MatchConditions
from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient, DatabaseProxy
from azure.cosmos.exceptions import CosmosResourceNotFoundError
from azure.identity.aio import DefaultAzureCredential

from core.config import settings

logger = logging.getLogger(__name__)

CANDIDATES_CONTAINER = "candidates"
VOTES_CONTAINER = "votes"


@dataclass(frozen=True)
class ContainerSpec:
    """Partitioning and uniqueness rules for one container."""

    partition_key: str
    unique_keys: tuple[str, ...] = ()

    @property
    def unique_key_policy(self) -> Optional[dict[str, Any]]:
        if not self.unique_keys:
            return None
        return {"uniqueKeys": [{"paths": [path]} for path in self.unique_keys]}


# A unique key is scoped to its logical partition; with /voter_id as both the
# partition key and the unique path, a voter can hold one vote document at most.
CONTAINERS: dict[str, ContainerSpec] = {
    CANDIDATES_CONTAINER: ContainerSpec(partition_key="/id"),
    VOTES_CONTAINER: ContainerSpec(partition_key="/voter_id", unique_keys=("/voter_id",)),
}

_cosmos_client: CosmosClient | None = None
_database: DatabaseProxy | None = None
_credential: DefaultAzureCredential | None = None


def parse_connection_string(connection_string: str) -> tuple[str, str]:
    """Split 'AccountEndpoint=...;AccountKey=...;' into (endpoint, key)."""
    parts = dict(part.split("=", 1) for part in connection_string.split(";") if "=" in part)
    endpoint = parts.get("AccountEndpoint", "")
    key = parts.get("AccountKey", "")
    if not endpoint or not key:
        raise ValueError("AZURE_COSMOS_CONNECTION_STRING must contain AccountEndpoint and AccountKey")
    return endpoint, key


def _build_client() -> CosmosClient:
    global _credential

    if settings.AZURE_COSMOS_CONNECTION_STRING:
        endpoint, key = parse_connection_string(settings.AZURE_COSMOS_CONNECTION_STRING)
        verify = not settings.AZURE_COSMOS_DISABLE_SSL
        logger.info(f"Cosmos DB client for {endpoint} using account key (verify TLS: {verify})")
        return CosmosClient(url=endpoint, credential=key, connection_verify=verify)

    if not settings.AZURE_COSMOS_ENDPOINT:
        raise ValueError("Either AZURE_COSMOS_ENDPOINT or AZURE_COSMOS_CONNECTION_STRING must be set")

    _credential = DefaultAzureCredential()
    logger.info(f"Cosmos DB client for {settings.AZURE_COSMOS_ENDPOINT} using Azure AD credentials")
    return CosmosClient(url=settings.AZURE_COSMOS_ENDPOINT, credential=_credential)


async def get_cosmos_client() -> CosmosClient:
    """Return the shared client, creating it on first call."""
    global _cosmos_client

    if _cosmos_client is None:
        _cosmos_client = _build_client()
    return _cosmos_client


async def get_database() -> DatabaseProxy:
    """Return the proxy for AZURE_COSMOS_DATABASE."""
    global _database

    if _database is None:
        client = await get_cosmos_client()
        _database = client.get_database_client(settings.AZURE_COSMOS_DATABASE)
    return _database


async def get_container(container_name: str) -> ContainerProxy:
    database = await get_database()
    return database.get_container_client(container_name)


async def ensure_containers() -> None:
    """
    Create the database and every container in CONTAINERS if missing.

    Existing containers are left untouched; partition keys and unique keys
    cannot be changed after creation.
    """
    client = await get_cosmos_client()
    database = await client.create_database_if_not_exists(id=settings.AZURE_COSMOS_DATABASE)
    for name, spec in CONTAINERS.items():
        options: dict[str, Any] = {}
        if spec.unique_key_policy:
            options["unique_key_policy"] = spec.unique_key_policy
        await database.create_container_if_not_exists(
            id=name,
            partition_key=PartitionKey(path=spec.partition_key),
            **options,
        )
        logger.info(f"Container '{name}' ready (partition key {spec.partition_key})")


async def close_cosmos() -> None:
    """Close the shared client and credential. Called on shutdown."""
    global _cosmos_client, _database, _credential

    if _cosmos_client is not None:
        await _cosmos_client.close()
        _cosmos_client = None
        _database = None
        logger.info("Closed Cosmos DB client")

    if _credential is not None:
        await _credential.close()
        _credential = None


# ============================================================================
# Item helpers
# ============================================================================


async def create_item(container_name: str, item: dict[str, Any]) -> dict[str, Any]:
    """Insert a new item. Raises CosmosResourceExistsError on an id or unique key clash."""
    container = await get_container(container_name)
    return await container.create_item(body=item)


async def read_item(container_name: str, item_id: str, partition_key: str) -> dict[str, Any] | None:
    """Point read; None when the item does not exist."""
    container = await get_container(container_name)
    try:
        return await container.read_item(item=item_id, partition_key=partition_key)
    except CosmosResourceNotFoundError:
        return None


async def replace_item(
    container_name: str,
    item: dict[str, Any],
    etag: str | None = None,
) -> dict[str, Any]:
    """
    Overwrite an item.

    With an etag the write is conditional on the stored item being unchanged
    and raises CosmosAccessConditionFailedError otherwise.
    """
    container = await get_container(container_name)
    conditions: dict[str, Any] = {}
    if etag:
        conditions = {"etag": etag, "match_condition": MatchConditions.IfNotModified}
    return await container.replace_item(item=item["id"], body=item, **conditions)


async def patch_item(
    container_name: str,
    item_id: str,
    partition_key: str,
    operations: list[dict[str, Any]],
    filter_predicate: str | None = None,
) -> dict[str, Any]:
    """
    Apply patch operations to one item on the server.

    Each patch is atomic, so concurrent ``incr`` operations on the same field
    all land. A filter_predicate makes the patch conditional.

    Raises:
        CosmosResourceNotFoundError: item does not exist
        CosmosAccessConditionFailedError: filter_predicate did not match
    """
    container = await get_container(container_name)
    options: dict[str, Any] = {}
    if filter_predicate:
        options["filter_predicate"] = filter_predicate
    return await container.patch_item(
        item=item_id,
        partition_key=partition_key,
        patch_operations=operations,
        **options,
    )


async def delete_item(
    container_name: str,
    item_id: str,
    partition_key: str,
    etag: str | None = None,
) -> None:
    """
    Delete an item.

    With an etag the delete only happens if the stored item is unchanged and
    raises CosmosAccessConditionFailedError otherwise.
    """
    container = await get_container(container_name)
    conditions: dict[str, Any] = {}
    if etag:
        conditions = {"etag": etag, "match_condition": MatchConditions.IfNotModified}
    await container.delete_item(item=item_id, partition_key=partition_key, **conditions)


async def query_items(
    container_name: str,
    query: str,
    parameters: list[dict[str, Any]] | None = None,
    partition_key: str | None = None,
    max_items: int | None = None,
) -> list[dict[str, Any]]:
    """
    Run a parameterized SQL query and collect the results.

    Without a partition_key the query fans out across partitions.
    """
    container = await get_container(container_name)
    options: dict[str, Any] = {}
    if parameters:
        options["parameters"] = parameters
    if partition_key:
        options["partition_key"] = partition_key
    if max_items:
        options["max_item_count"] = max_items

    results: list[dict[str, Any]] = []
    async for row in container.query_items(query=query, **options):
        results.append(row)
        if max_items and len(results) >= max_items:
            break
    return results


async def query_count(
    container_name: str,
    query: str,
    parameters: list[dict[str, Any]] | None = None,
    partition_key: str | None = None,
) -> int:
    """Run a ``SELECT VALUE COUNT(1)`` query and return the number."""
    results = await query_items(container_name, query, parameters, partition_key)
    if results and isinstance(results[0], (int, float)):
        return int(results[0])
    return 0
