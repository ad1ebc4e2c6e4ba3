"""
Query Runner - Syncs the tracks matched by a media library collection query.

    run_query(executor, 'artist:Kraftwerk AND album:"Radio-Aktivität"')

Problems are reported through logging, not raised, because this is the
operator-facing entry point of the command line.
"""

import logging
from typing import Optional

from MediaLibrary import MediaLibraryError, QuerySyntaxError

from .errors import BatchSyncError, QueryParseFailed
from .sync_executor import SyncExecutor, SyncResult

logger = logging.getLogger(__name__)


def parse_query(executor: SyncExecutor, query: str):
    """Parse a collection query. Raises QueryParseFailed."""
    try:
        return executor.context.client.parse_query(query)
    except QuerySyntaxError as e:
        raise QueryParseFailed(str(e)) from e


def run_query(executor: SyncExecutor, query: str) -> Optional[SyncResult]:
    """
    Resolve a query to track ids and sync them as one batch.

    Returns:
        The SyncResult, or None if the query or the sync failed
    """
    try:
        collection = parse_query(executor, query)
    except QueryParseFailed as e:
        logger.error("Failed to parse query.")
        logger.debug(f"Query parse error: {e}")
        return None

    try:
        ids = executor.context.client.query_ids(collection)
    except MediaLibraryError as e:
        logger.error(f"Failed to get collection: {e}")
        return None

    logger.info(f"Query matched {len(ids)} tracks")

    try:
        return executor.sync_batch(ids)
    except BatchSyncError as e:
        logger.error(str(e))
        return None
