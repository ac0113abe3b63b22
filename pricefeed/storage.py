"""
Simple MongoDB storage for fetched price quotes
"""
from datetime import datetime, timezone
from typing import Optional

import structlog
from pymongo import DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from .models import PriceQuote

logger = structlog.get_logger(__name__)


class QuoteStorage:
    def __init__(self, config: dict = None):
        if config and 'mongodb' in config:
            self.connection_string = config['mongodb']['uri']
            self.database_name = config['mongodb']['database']
            self.collection_names = config['mongodb'].get('collections', {'quotes': 'price_quotes'})
        else:
            raise ValueError("Config dict with mongodb section must be provided")

        self.client = None
        self.db = None
        self.quotes = None

    def connect(self, database_name: str = None) -> bool:
        """Connect to MongoDB and initialize the quotes collection"""
        try:
            self.client = MongoClient(self.connection_string)
            self.db = self.client[database_name or self.database_name]
            self.quotes = self.db[self.collection_names['quotes']]
            self._create_indexes()
            return True
        except PyMongoError as e:
            logger.error("mongodb_connect_failed", error=str(e))
            return False

    def _create_indexes(self):
        try:
            self.quotes.create_index("timestamp")
        except PyMongoError as e:
            logger.warning("mongodb_index_failed", error=str(e))

    def close(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()

    def add_quote(self, quote: PriceQuote) -> bool:
        """Insert one quote document"""
        try:
            doc = quote.to_document()
            doc['created_at'] = datetime.now(timezone.utc)
            self.quotes.insert_one(doc)
            return True
        except PyMongoError as e:
            logger.error("quote_insert_failed", error=str(e), timestamp=quote.timestamp)
            return False

    def latest_quote(self) -> Optional[PriceQuote]:
        """Most recently stamped quote, or None"""
        try:
            doc = self.quotes.find_one(sort=[("timestamp", DESCENDING)])
        except PyMongoError as e:
            logger.error("quote_lookup_failed", error=str(e))
            return None
        if not doc:
            return None
        return PriceQuote(value=doc['usd'], timestamp=doc['timestamp'], asset=doc.get('asset', 'bitcoin'))
