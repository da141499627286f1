"""Client side of the ingestion protocol.

Sends one recommendation batch to the aggregator over a fresh TCP connection
and returns whatever the aggregator wrote back before closing.
"""

import logging
import socket
import time
from typing import Iterable, Optional, Tuple

from src.exceptions import ForwardingError
from src.recommender.catalog import Product
from src.transport.codec import RECV_CHUNK_SIZE, encode_batch

# Configure module logger
logger = logging.getLogger(__name__)

Address = Tuple[str, int]


def forward_batch(
    address: Address,
    items: Iterable[Product],
    timeout: Optional[float] = None,
) -> bytes:
    """Send a batch to the aggregator and read until it closes the connection.

    Opens a new connection for every call; there is no pooling and no retry.
    With ``timeout=None`` a peer that never closes blocks the caller forever.

    Args:
        address: ``(host, port)`` of the aggregator's ingestion listener.
        items: Products to send.
        timeout: Optional per-operation socket timeout in seconds.

    Returns:
        All bytes received before the peer closed (normally empty).

    Raises:
        ForwardingError: If connecting, writing or reading fails.
    """
    items = list(items)
    payload = encode_batch(items)
    start_time = time.time()

    try:
        with socket.create_connection(address, timeout=timeout) as conn:
            conn.sendall(payload)

            chunks = []
            while True:
                chunk = conn.recv(RECV_CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
    except OSError as e:
        logger.error(
            "Forwarding batch failed",
            extra={
                "address": f"{address[0]}:{address[1]}",
                "num_items": len(items),
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        raise ForwardingError(address, e) from e

    response = b"".join(chunks)
    logger.info(
        "Batch forwarded",
        extra={
            "address": f"{address[0]}:{address[1]}",
            "num_items": len(items),
            "payload_bytes": len(payload),
            "response_bytes": len(response),
            "duration_ms": round((time.time() - start_time) * 1000, 2),
        },
    )
    return response


class Forwarder:
    """Sends batches to a fixed aggregator address."""

    def __init__(self, address: Address, timeout: Optional[float] = None):
        self.address = address
        self.timeout = timeout

    def send(self, items: Iterable[Product]) -> bytes:
        return forward_batch(self.address, items, timeout=self.timeout)
