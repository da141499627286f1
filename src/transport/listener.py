"""Server side of the ingestion protocol.

Accepts TCP connections, decodes one batch per connection and appends it to
the accumulation store. The listener never writes a reply: closing the
connection is what tells the sender it is done.
"""

import logging
import socket
import threading
from typing import Optional, Tuple

from src.aggregator.store import AccumulationStore
from src.exceptions import BatchDecodeError
from src.transport.codec import DEFAULT_MAX_BATCH_BYTES, read_batch

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_BACKLOG = 128
# How often the accept loop wakes up to check for stop()
ACCEPT_POLL_INTERVAL = 0.5


class IngestionListener:
    """Thread-per-connection TCP listener feeding an AccumulationStore.

    Every accepted connection is handled on its own daemon thread. When
    ``max_connections`` is positive, at most that many connections are
    handled at once and the accept loop waits for a free slot.
    """

    def __init__(
        self,
        store: AccumulationStore,
        host: str = "0.0.0.0",
        port: int = 8080,
        max_batch_bytes: int = DEFAULT_MAX_BATCH_BYTES,
        max_connections: int = 0,
        read_timeout: Optional[float] = None,
    ):
        self.store = store
        self.host = host
        self.port = port
        self.max_batch_bytes = max_batch_bytes
        self.read_timeout = read_timeout

        self._slots = (
            threading.BoundedSemaphore(max_connections) if max_connections > 0 else None
        )
        self._server_socket: Optional[socket.socket] = None
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        """Bound ``(host, port)``; useful when binding to port 0."""
        if self._server_socket is None:
            raise RuntimeError("Listener is not bound")
        return self._server_socket.getsockname()[:2]

    def bind(self) -> Tuple[str, int]:
        """Create the listening socket. Idempotent."""
        if self._server_socket is None:
            server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                server_socket.bind((self.host, self.port))
                server_socket.listen(DEFAULT_BACKLOG)
            except OSError:
                server_socket.close()
                raise
            server_socket.settimeout(ACCEPT_POLL_INTERVAL)
            self._server_socket = server_socket
            logger.info(
                "Ingestion listener bound",
                extra={"host": self.host, "port": self.address[1]},
            )
        return self.address

    def serve_forever(self) -> None:
        """Accept connections until ``stop()`` is called."""
        self.bind()
        server_socket = self._server_socket

        while not self._stopped.is_set():
            if self._slots is not None:
                # Wait for a free slot without missing a stop request
                if not self._slots.acquire(timeout=ACCEPT_POLL_INTERVAL):
                    continue

            try:
                conn, peer = server_socket.accept()
            except socket.timeout:
                self._release_slot()
                continue
            except OSError as e:
                self._release_slot()
                if self._stopped.is_set():
                    break
                logger.error(
                    "Error accepting connection",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )
                continue

            threading.Thread(
                target=self.handle_connection,
                args=(conn, peer),
                name=f"ingest-{peer[0]}:{peer[1]}",
                daemon=True,
            ).start()

        logger.info("Ingestion listener stopped")

    def handle_connection(self, conn: socket.socket, peer: Tuple[str, int]) -> None:
        """Decode one batch from ``conn``, store it, then close the connection."""
        peer_label = f"{peer[0]}:{peer[1]}"
        try:
            conn.settimeout(self.read_timeout)
            try:
                batch = read_batch(conn, max_bytes=self.max_batch_bytes)
            except BatchDecodeError as e:
                logger.warning(
                    "Error decoding batch, dropping connection",
                    extra={"peer": peer_label, **e.details},
                )
                return
            except OSError as e:
                logger.warning(
                    "Error reading batch, dropping connection",
                    extra={
                        "peer": peer_label,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                return

            store_size = self.store.append(batch)
            logger.info(
                "Batch received and stored",
                extra={
                    "peer": peer_label,
                    "num_items": len(batch),
                    "store_size": store_size,
                },
            )
        finally:
            conn.close()
            self._release_slot()

    def start(self) -> threading.Thread:
        """Bind and run the accept loop on a background daemon thread."""
        self.bind()
        self._thread = threading.Thread(
            target=self.serve_forever, name="ingestion-listener", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop accepting connections and close the listening socket."""
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout)
        if self._server_socket is not None:
            self._server_socket.close()

    def _release_slot(self) -> None:
        if self._slots is not None:
            self._slots.release()
