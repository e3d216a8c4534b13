import asyncpg # type: ignore


async def get_db_pool(dsn: str, min_size: int = 1, max_size: int = 10):
    return await asyncpg.create_pool(
        dsn=dsn,
        min_size=min_size,
        max_size=max_size,
    )
