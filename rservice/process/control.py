import asyncio
import logging

from enum import Enum

logger = logging.getLogger(__name__)

SHUTDOWN_COMMAND = b'shutdown\n'


class ShutdownResult(Enum):
    TERMINATED = 'terminated'
    NO_LISTENER = 'no-listener'
    OTHER_FAILURE = 'other-failure'


class GracefulShutdownClient:
    """Asks a managed process to exit through its control port.

    Delivery is best effort: the command is written and the connection
    closed without waiting for a reply. Failures are reported through
    :class:`ShutdownResult` and never raised.
    """

    def __init__(self, host='127.0.0.1', timeout=5.0):
        self.host = host
        self.timeout = timeout

    async def request_shutdown(self, port: int) -> ShutdownResult:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, port), self.timeout
            )
        except ConnectionRefusedError:
            logger.info('Shutdown %s:%d: nothing listening', self.host, port)
            return ShutdownResult.NO_LISTENER
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(
                'Shutdown %s:%d: connect failed: %s %s', self.host, port,
                type(e).__name__, e
            )
            return ShutdownResult.OTHER_FAILURE

        result = ShutdownResult.TERMINATED
        try:
            writer.write(SHUTDOWN_COMMAND)
            await asyncio.wait_for(writer.drain(), self.timeout)
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(
                'Shutdown %s:%d: send failed: %s %s', self.host, port,
                type(e).__name__, e
            )
            result = ShutdownResult.OTHER_FAILURE
        finally:
            writer.close()
            try:
                await asyncio.wait_for(writer.wait_closed(), self.timeout)
            except (OSError, asyncio.TimeoutError):
                # Peer may already be gone after acting on the command
                logger.debug('Shutdown %s:%d: close failed', self.host, port)

        if result is ShutdownResult.TERMINATED:
            logger.info('Shutdown %s:%d: command sent', self.host, port)
        return result
