import asyncio, logging

from tiyende.src.constants import DB_URL, SESSION_SWEEP_INTERVAL
from tiyende.src.db import makeEngine
from tiyende.src.storage import Storage

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("Cleaner")


def removeExpiredSessions(storage: Storage) -> int:
    deletedCount = storage.removeExpiredSessions()
    logger.info(f"Removed {deletedCount} expired sessions")
    return deletedCount


async def sweepSessions(storage: Storage, interval: int = SESSION_SWEEP_INTERVAL):
    """Remove expired sessions every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(removeExpiredSessions, storage)
        except Exception:
            logger.exception("Session sweep failed")


def main():
    storage = Storage(makeEngine(DB_URL))
    try:
        removeExpiredSessions(storage)
    except Exception:
        logger.exception("cleaner.py failed")
    finally:
        storage.close()


if __name__ == "__main__":
    main()
