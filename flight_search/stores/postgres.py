"""
PostgreSQL candidate store (asyncpg)

Flights and their append-only price observations live in two tables. Price
aggregates are computed per flight with LATERAL subqueries at query time; the
latest price is picked explicitly with ORDER BY captured_at DESC, so it never
depends on storage or join order.
"""

import dataclasses
import logging
from typing import List, Optional, Tuple

import asyncpg

from .. import config
from ..filters import SearchFilters
from ..models import Candidate, FlightRecord, PriceObservation, Suggestion
from .base import (
    MIN_SUGGESTION_LENGTH,
    SUGGESTIONS_PER_KIND,
    CandidateStore,
    airline_suggestion,
    route_suggestion,
    validate_suggestion_kind,
)

logger = logging.getLogger(__name__)

FLIGHT_COLUMNS = """
    f.id, f.origin, f.destination, f.airline, f.flight_date, f.aircraft,
    f.cabin_class, f.departure_time, f.arrival_time, f.duration,
    f.tracking_interval, f.is_active
"""

CANDIDATE_QUERY = """
    SELECT {columns},
        agg.price_count, agg.avg_price, agg.min_price, agg.max_price, agg.stddev_price,
        latest.price AS latest_price
    FROM flights f
    LEFT JOIN LATERAL (
        SELECT count(*) AS price_count,
               avg(p.price) AS avg_price,
               min(p.price) AS min_price,
               max(p.price) AS max_price,
               stddev_pop(p.price) AS stddev_price
        FROM price_observations p
        WHERE p.flight_id = f.id
    ) agg ON TRUE
    LEFT JOIN LATERAL (
        SELECT p.price
        FROM price_observations p
        WHERE p.flight_id = f.id
        ORDER BY p.captured_at DESC, p.id DESC
        LIMIT 1
    ) latest ON TRUE
    WHERE {where}
    ORDER BY f.flight_date, f.id
"""


class _Params:
    """Collects positional asyncpg parameters ($1, $2, ...)"""

    def __init__(self):
        self.values = []

    def add(self, value) -> str:
        self.values.append(value)
        return f"${len(self.values)}"


def build_candidate_query(filters: SearchFilters, limit: Optional[int] = None) -> Tuple[str, list]:
    """
    Translate SearchFilters into the candidate SELECT.

    Returns:
        (sql, params) ready for conn.fetch(sql, *params)
    """
    params = _Params()
    where = ["f.is_active"]

    if filters.origin:
        where.append(f"f.origin = {params.add(filters.origin)}")
    if filters.destination:
        where.append(f"f.destination = {params.add(filters.destination)}")
    if filters.category:
        where.append(f"lower(f.airline) = lower({params.add(filters.category)})")
    if filters.categories:
        where.append(f"lower(f.airline) = ANY({params.add([c.lower() for c in filters.categories])}::text[])")
    if filters.cabin_class:
        where.append(f"lower(f.cabin_class) = lower({params.add(filters.cabin_class)})")
    if filters.routes:
        pairs = [
            f"(f.origin = {params.add(origin)} AND f.destination = {params.add(destination)})"
            for origin, destination in filters.routes
        ]
        where.append("(" + " OR ".join(pairs) + ")")
    if filters.date_start:
        where.append(f"f.flight_date >= {params.add(filters.date_start)}")
    if filters.date_end:
        where.append(f"f.flight_date <= {params.add(filters.date_end)}")
    if filters.query:
        # Plain substring match; position() avoids LIKE wildcard escaping
        needle = params.add(filters.query.lower())
        fields = ["f.airline", "f.origin", "f.destination", "coalesce(f.aircraft, '')", "coalesce(f.cabin_class, '')"]
        where.append("(" + " OR ".join(f"position({needle} in lower({col})) > 0" for col in fields) + ")")
    # NULL latest price fails both comparisons, which excludes unpriced flights
    if filters.price_min is not None:
        where.append(f"latest.price >= {params.add(filters.price_min)}")
    if filters.price_max is not None:
        where.append(f"latest.price <= {params.add(filters.price_max)}")

    sql = CANDIDATE_QUERY.format(columns=FLIGHT_COLUMNS, where=" AND ".join(where))
    if limit is not None:
        sql += f" LIMIT {params.add(limit)}"
    return sql, params.values


def row_to_record(row) -> FlightRecord:
    return FlightRecord(
        id=row["id"],
        origin=row["origin"],
        destination=row["destination"],
        airline=row["airline"],
        flight_date=row["flight_date"],
        aircraft=row["aircraft"],
        cabin_class=row["cabin_class"],
        departure_time=row["departure_time"],
        arrival_time=row["arrival_time"],
        duration=row["duration"],
        tracking_interval=row["tracking_interval"],
        is_active=row["is_active"],
    )


def row_to_candidate(row) -> Candidate:
    count = int(row["price_count"] or 0)
    avg_price = float(row["avg_price"]) if row["avg_price"] is not None else None
    ratio = None
    if avg_price and row["stddev_price"] is not None:
        ratio = float(row["stddev_price"]) / avg_price
    return Candidate(
        record=row_to_record(row),
        latest_price=float(row["latest_price"]) if row["latest_price"] is not None else None,
        price_count=count,
        avg_price=avg_price,
        min_price=float(row["min_price"]) if row["min_price"] is not None else None,
        max_price=float(row["max_price"]) if row["max_price"] is not None else None,
        variance_ratio=ratio,
    )


class PostgresFlightStore(CandidateStore):
    """PostgreSQL-backed flight + price store"""

    def __init__(self, dsn: Optional[str] = None):
        self.pool: Optional[asyncpg.Pool] = None
        db_url = dsn or config.DATABASE_URL
        # asyncpg doesn't understand 'postgresql+asyncpg://', only 'postgresql://'
        self.connection_string = db_url.replace("postgresql+asyncpg://", "postgresql://")

    async def connect(self):
        """Initialize connection pool"""
        self.pool = await asyncpg.create_pool(
            self.connection_string,
            min_size=1,
            max_size=10,
        )
        logger.info(f"Connected to PostgreSQL: {self.connection_string.split('@')[-1]}")

    async def close(self):
        """Close connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Disconnected from PostgreSQL")

    async def init_schema(self):
        """Create tables and indexes"""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS flights (
                    id SERIAL PRIMARY KEY,
                    origin CHAR(3) NOT NULL,
                    destination CHAR(3) NOT NULL,
                    airline TEXT NOT NULL,
                    flight_date TIMESTAMPTZ NOT NULL,
                    aircraft TEXT,
                    cabin_class TEXT NOT NULL DEFAULT 'Economy',
                    departure_time TEXT NOT NULL DEFAULT '00:00',
                    arrival_time TEXT NOT NULL DEFAULT '00:00',
                    duration TEXT NOT NULL DEFAULT '0h 0m',
                    tracking_interval TEXT NOT NULL DEFAULT '1day',
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS price_observations (
                    id SERIAL PRIMARY KEY,
                    flight_id INTEGER NOT NULL REFERENCES flights(id) ON DELETE CASCADE,
                    price DOUBLE PRECISION NOT NULL,
                    currency TEXT NOT NULL DEFAULT 'USD',
                    captured_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    source TEXT NOT NULL DEFAULT 'system'
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_flights_route
                ON flights (origin, destination)
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_flights_date
                ON flights (flight_date)
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_flights_active
                ON flights (is_active)
            """)
            # Serves both the aggregate and the latest-price lateral subqueries
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_prices_flight_captured
                ON price_observations (flight_id, captured_at DESC, id DESC)
            """)

            logger.info("Database schema initialized (flights + price_observations)")

    async def add_record(self, record: FlightRecord) -> FlightRecord:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO flights
                    (origin, destination, airline, flight_date, aircraft, cabin_class,
                     departure_time, arrival_time, duration, tracking_interval, is_active)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                RETURNING id
                """,
                record.origin,
                record.destination,
                record.airline,
                record.flight_date,
                record.aircraft,
                record.cabin_class,
                record.departure_time,
                record.arrival_time,
                record.duration,
                record.tracking_interval,
                record.is_active,
            )
        return dataclasses.replace(record, id=row["id"])

    async def add_observation(self, observation: PriceObservation) -> PriceObservation:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO price_observations (flight_id, price, currency, captured_at, source)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING id
                """,
                observation.flight_id,
                observation.price,
                observation.currency,
                observation.captured_at,
                observation.source,
            )
        return dataclasses.replace(observation, id=row["id"])

    async def fetch_candidates(
        self,
        filters: SearchFilters,
        limit: Optional[int] = None,
    ) -> List[Candidate]:
        sql, params = build_candidate_query(filters, limit)
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(sql, *params)
        logger.debug(f"Fetched {len(rows)} candidate rows (limit={limit})")
        return [row_to_candidate(row) for row in rows]

    async def suggest(self, text: str, kind: str = "all", limit: int = 20) -> List[Suggestion]:
        validate_suggestion_kind(kind)
        if not text or len(text) < MIN_SUGGESTION_LENGTH:
            return []

        needle = text.lower()
        suggestions: List[Suggestion] = []
        async with self.pool.acquire() as conn:
            if kind in ("all", "routes"):
                rows = await conn.fetch(
                    """
                    SELECT DISTINCT origin, destination
                    FROM flights
                    WHERE is_active
                      AND (position($1 in lower(origin)) > 0 OR position($1 in lower(destination)) > 0)
                    ORDER BY origin, destination
                    LIMIT $2
                    """,
                    needle,
                    SUGGESTIONS_PER_KIND,
                )
                suggestions.extend(route_suggestion(r["origin"], r["destination"]) for r in rows)

            if kind in ("all", "airlines"):
                rows = await conn.fetch(
                    """
                    SELECT DISTINCT airline
                    FROM flights
                    WHERE is_active AND position($1 in lower(airline)) > 0
                    ORDER BY airline
                    LIMIT $2
                    """,
                    needle,
                    SUGGESTIONS_PER_KIND,
                )
                suggestions.extend(airline_suggestion(r["airline"]) for r in rows)

        return suggestions[:limit]
