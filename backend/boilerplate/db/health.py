"""
Connection liveness check used by the pool and ``SQLClient.health_check``.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

PING_SQL = "SELECT 1"


def ping(conn: Any) -> bool:
    """
    Round-trip ``SELECT 1`` on *conn*. Never raises: any driver error means
    the connection is not usable and the result is False.
    """
    cur = None
    try:
        cur = conn.cursor()
        cur.execute(PING_SQL)
        cur.fetchone()
    except Exception as exc:
        logger.debug("Ping failed: %s", exc)
        return False
    finally:
        if cur is not None:
            try:
                cur.close()
            except Exception as exc:
                logger.debug("Cursor close failed after ping: %s", exc)
    return True
