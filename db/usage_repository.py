import logging
import time
from typing import List

from asyncpg import Pool

from models.usage_models import UsageRecord
from utils.errors import PersistenceError
from utils.logging import log_database_query


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS usos (
    id SERIAL PRIMARY KEY,
    grado TEXT NOT NULL,
    tema TEXT NOT NULL,
    respuesta TEXT NOT NULL,
    fecha TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS usos_grado_fecha_idx ON usos (grado, fecha DESC);
"""


class UsageRepository:
    """Owns the lifecycle of usage records: create and read, never update or delete."""

    REQUIRED_FIELDS = ("grado", "tema", "respuesta")

    def __init__(self, db_pool: Pool):
        self.pool = db_pool
        self.logger = logging.getLogger(f"profe_ia.{self.__class__.__name__}")
        self.logger.info("UsageRepository initialized")

    async def ensure_schema(self) -> None:
        try:
            async with self.pool.acquire() as connection:
                await connection.execute(SCHEMA_SQL)
            self.logger.info("Table 'usos' is ready")
        except Exception as e:
            self.logger.error(f"Failed to create schema: {e}")
            raise PersistenceError(f"Failed to create schema: {e}", cause=e) from e

    def _check_required(self, **fields: str) -> None:
        for name in self.REQUIRED_FIELDS:
            if not fields.get(name):
                raise PersistenceError(f"Field '{name}' is required")

    async def create_record(self, grado: str, tema: str, respuesta: str) -> UsageRecord:
        self._check_required(grado=grado, tema=tema, respuesta=respuesta)

        self.logger.info(f"Storing usage for grado={grado}")
        start_time = time.time()
        try:
            async with self.pool.acquire() as connection:
                async with connection.transaction():
                    row = await connection.fetchrow(
                        "INSERT INTO usos (grado, tema, respuesta) VALUES ($1, $2, $3) "
                        "RETURNING grado, tema, respuesta, fecha",
                        grado,
                        tema,
                        respuesta
                    )
        except Exception as e:
            self.logger.error(f"Failed to store usage for grado={grado}: {e}")
            raise PersistenceError(f"Failed to store usage: {e}", cause=e) from e

        log_database_query("INSERT", "usos", (time.time() - start_time) * 1000, 1)
        return UsageRecord(**dict(row))

    async def find_by_grade(self, grado: str) -> List[UsageRecord]:
        """Return every record for ``grado``, most recent first."""
        start_time = time.time()
        try:
            async with self.pool.acquire() as connection:
                rows = await connection.fetch(
                    "SELECT grado, tema, respuesta, fecha FROM usos "
                    "WHERE grado = $1 ORDER BY fecha DESC",
                    grado
                )
        except Exception as e:
            self.logger.error(f"Failed to fetch history for grado={grado}: {e}")
            raise PersistenceError(f"Failed to fetch history: {e}", cause=e) from e

        log_database_query("SELECT", "usos", (time.time() - start_time) * 1000, len(rows))
        return [UsageRecord(**dict(row)) for row in rows]
