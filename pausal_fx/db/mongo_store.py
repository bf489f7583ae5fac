"""MongoDB backed rate cache."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Sequence

from pymongo import MongoClient, UpdateOne
from pymongo.errors import PyMongoError

from pausal_fx.db.base_store import PersistenceResult, RateStore
from pausal_fx.ingestion.models import RateQuote
from pausal_fx.utils.logger import get_logger

LOGGER = get_logger(__name__)

COLLECTION_NAME = "exchange_rates"
_KEY_FIELDS = [("rate_date", 1), ("from_currency", 1), ("to_currency", 1)]


def _doc_to_quote(doc: dict[str, Any]) -> RateQuote:
    return RateQuote(
        rate_date=date.fromisoformat(doc["rate_date"]),
        from_currency=doc["from_currency"],
        to_currency=doc["to_currency"],
        rate=float(doc["rate"]),
        fetched_at=doc.get("fetched_at"),
    )


class MongoRateStore(RateStore):
    """Rate cache persisted in a MongoDB collection keyed by date and pair."""

    def __init__(self, url: str, *, database: str | None = None, client: Any = None) -> None:
        self.url = url
        self._client = client if client is not None else MongoClient(url)
        db = self._client.get_default_database() if database is None else self._client[database]
        if db is None:
            raise ValueError("MongoDB connection URI must include a database name")
        self._collection = db[COLLECTION_NAME]
        self.ensure_schema()

    def ensure_schema(self) -> None:
        try:
            LOGGER.info("Ensuring MongoDB %s collection exists", COLLECTION_NAME)
            self._client.admin.command("ping")
            self._collection.create_index(_KEY_FIELDS, unique=True)
        except PyMongoError as exc:  # pragma: no cover - error path
            raise RuntimeError(f"Failed to ensure MongoDB schema: {exc}") from exc

    def get_quote(self, rate_date: date, from_currency: str, to_currency: str) -> RateQuote | None:
        doc = self._collection.find_one(
            {
                "rate_date": rate_date.isoformat(),
                "from_currency": from_currency.upper(),
                "to_currency": to_currency.upper(),
            }
        )
        return _doc_to_quote(doc) if doc else None

    def put_many(self, quotes: Sequence[RateQuote]) -> PersistenceResult:
        result = PersistenceResult()
        if not quotes:
            return result
        operations: list[UpdateOne] = []
        for quote in quotes:
            key = {
                "rate_date": quote.rate_date.isoformat(),
                "from_currency": quote.from_currency,
                "to_currency": quote.to_currency,
            }
            fetched_at = quote.fetched_at or datetime.now(timezone.utc).replace(tzinfo=None)
            operations.append(
                UpdateOne(key, {"$set": {**key, "rate": quote.rate, "fetched_at": fetched_at}}, upsert=True)
            )
        try:
            outcome = self._collection.bulk_write(operations, ordered=False)
        except PyMongoError as exc:  # pragma: no cover - error path
            raise RuntimeError(f"Failed to store MongoDB rates: {exc}") from exc
        result.inserted = outcome.upserted_count
        result.updated = len(operations) - outcome.upserted_count
        return result

    def fetch_range(
        self,
        start: date | None = None,
        end: date | None = None,
        *,
        from_currency: str | None = None,
        to_currency: str | None = None,
    ) -> list[RateQuote]:
        query: dict[str, Any] = {}
        if start is not None or end is not None:
            range_query: dict[str, str] = {}
            if start is not None:
                range_query["$gte"] = start.isoformat()
            if end is not None:
                range_query["$lte"] = end.isoformat()
            query["rate_date"] = range_query
        if from_currency is not None:
            query["from_currency"] = from_currency.upper()
        if to_currency is not None:
            query["to_currency"] = to_currency.upper()
        docs = self._collection.find(query).sort("rate_date", 1)
        return [_doc_to_quote(doc) for doc in docs]

    def close(self) -> None:  # pragma: no cover - trivial cleanup
        self._client.close()


__all__ = ["MongoRateStore"]
